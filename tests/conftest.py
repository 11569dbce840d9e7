from __future__ import annotations

import os
import threading
from concurrent.futures import Executor, Future
from typing import Any, Callable, Optional

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class ImmediateExecutor(Executor):
    """Run submitted work on the calling thread."""

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # pragma: no cover - surfaced through the future
            future.set_exception(exc)
        return future


class DeferredExecutor(Executor):
    """Queue submitted work until the test runs it."""

    def __init__(self) -> None:
        self.pending: list[tuple[Callable[..., Any], tuple, dict]] = []

    def submit(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Future:
        self.pending.append((fn, args, kwargs))
        return Future()

    def run_pending(self) -> None:
        while self.pending:
            fn, args, kwargs = self.pending.pop(0)
            fn(*args, **kwargs)


class StubSigner:
    def __init__(self, address: str = "0x00000000000000000000000000000000000000aa") -> None:
        self.address = address


class StubProvider:
    def __init__(self, signer: Optional[StubSigner] = None, error: Optional[Exception] = None) -> None:
        self.signer = signer or StubSigner()
        self.error = error

    def get_signer(self) -> StubSigner:
        if self.error is not None:
            raise self.error
        return self.signer


class StubReceipt:
    def __init__(self, token_ids: tuple[int, ...], transaction_hash: str = "0xabc") -> None:
        self.token_ids = token_ids
        self.transaction_hash = transaction_hash


class StubPending:
    def __init__(
        self,
        receipt: Optional[StubReceipt],
        error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.receipt = receipt
        self.error = error
        self.gate = gate

    def wait(self, timeout: Optional[float] = None) -> Optional[StubReceipt]:
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.receipt


class StubContract:
    """Records mint calls and confirms them with sequential token ids."""

    def __init__(
        self,
        cost: int = 10,
        mint_error: Optional[Exception] = None,
        wait_error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
    ) -> None:
        self.cost = cost
        self.mint_error = mint_error
        self.wait_error = wait_error
        self.gate = gate
        self.calls: list[tuple[str, int, int]] = []
        self.signer: Optional[StubSigner] = None
        self.minted = 0
        self.submitted = threading.Event()

    def connect(self, signer: StubSigner) -> "StubContract":
        self.signer = signer
        return self

    def mint(self, quantity: int, value: int) -> StubPending:
        self.calls.append((self.signer.address if self.signer else "", quantity, value))
        self.submitted.set()
        if self.mint_error is not None:
            raise self.mint_error
        if quantity < 1 or value < quantity * self.cost:
            raise RuntimeError("execution reverted")
        ids = tuple(range(self.minted + 1, self.minted + quantity + 1))
        self.minted += quantity
        return StubPending(StubReceipt(ids), error=self.wait_error, gate=self.gate)


@pytest.fixture
def immediate_executor() -> ImmediateExecutor:
    return ImmediateExecutor()


@pytest.fixture(scope="session")
def qapp():
    pytest.importorskip("PySide6")
    pytest.importorskip("PySide6.QtWidgets")
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app
