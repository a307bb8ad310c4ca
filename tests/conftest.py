"""Shared fakes for the chain, wallet and share collaborators."""
import pytest
from web3 import Web3

from castinspo.chain import ClaimEligibilityOracle
from castinspo.claimer import ClaimStateMachine
from castinspo.config import BASE_CHAIN_ID
from castinspo.quote_store import QuoteStore

ADDRESS = "0x1111111111111111111111111111111111111111"
OTHER_ADDRESS = "0x2222222222222222222222222222222222222222"
CONTRACT = "0x99952E86dD355D77fc19EBc167ac93C4514BA7CB"
TX_HASH = "0x" + "ab" * 32


class FakeChain:
    """In-memory stand-in for the check-in contract's storage."""

    def __init__(self, current_day=100):
        self.current_day = current_day
        self.last_claim = {}
        self.fail_reads = False
        self.reads = 0

    def claimed(self, address):
        self.last_claim[Web3.to_checksum_address(address)] = self.current_day


class _Call:
    def __init__(self, chain, fn):
        self.chain = chain
        self.fn = fn

    async def call(self):
        self.chain.reads += 1
        if self.chain.fail_reads:
            raise ConnectionError("rpc timeout")
        return self.fn()


class _Functions:
    def __init__(self, chain):
        self.chain = chain

    def getCurrentDay(self):
        return _Call(self.chain, lambda: self.chain.current_day)

    def lastClaimDay(self, owner):
        return _Call(self.chain, lambda: self.chain.last_claim.get(owner, 0))


class FakeContract:
    def __init__(self, chain):
        self.functions = _Functions(chain)


class FakeWallet:
    """EIP-1193 fake; a sent claim lands on ``chain`` only when ``mine`` is set."""

    def __init__(self, chain, address=ADDRESS, chain_id=BASE_CHAIN_ID):
        self.chain = chain
        self.address = address
        self.chain_id = chain_id
        self.mine = True
        self.send_error = None
        self.switch_error = None
        self.gate = None
        self.sent = []
        self.methods = []

    async def request(self, method, params=None):
        self.methods.append(method)
        if method == "eth_requestAccounts":
            return [self.address]
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "wallet_switchEthereumChain":
            if self.switch_error is not None:
                raise self.switch_error
            self.chain_id = int(params[0]["chainId"], 16)
            return None
        if method == "eth_sendTransaction":
            self.sent.append(params[0])
            if self.gate is not None:
                await self.gate.wait()
            if self.send_error is not None:
                raise self.send_error
            if self.mine:
                self.chain.claimed(params[0]["from"])
            return TX_HASH
        raise AssertionError(f"unexpected method {method}")


class Notices:
    def __init__(self):
        self.items = []

    def __call__(self, message, level):
        self.items.append((level, message))

    def errors(self):
        return [m for level, m in self.items if level == "error"]


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def oracle(chain):
    return ClaimEligibilityOracle(FakeContract(chain))


@pytest.fixture
def wallet(chain):
    return FakeWallet(chain)


@pytest.fixture
def notices():
    return Notices()


@pytest.fixture
def make_machine(oracle, wallet, notices):
    def _make(**kwargs):
        kwargs.setdefault("contract_address", CONTRACT)
        kwargs.setdefault("chain_id", BASE_CHAIN_ID)
        kwargs.setdefault("reconcile_delay_s", 0)
        kwargs.setdefault("notify", notices)
        return ClaimStateMachine(oracle, kwargs.pop("wallet", wallet), **kwargs)

    return _make


@pytest.fixture
def store():
    records = [{"content": f"Quote number {i} keeps going.", "author": f"Author {i}"} for i in range(60)]
    records[42] = {"content": "Small steps every day.", "author": "Anon"}
    return QuoteStore.from_records(records)
