"""Lifecycle of a single mint request, from submission to settlement.

``MintController`` owns an :class:`InteractionState` and drives it in response
to the contract gateway. A submission moves through ``SUBMITTING`` and
``AWAITING_CONFIRMATION`` on a worker thread and always ends in ``SETTLED``
with exactly one :class:`MintOutcome`. While a request is outstanding the
controller reports ``busy`` and ignores further submissions.

Listeners are called on the worker thread; UI code must hop back to its own
thread before touching widgets.
"""

from __future__ import annotations

import enum
import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Union

logger = logging.getLogger(__name__)

REJECTION_MESSAGE = "User rejected or transaction reverted"


class SignerProvider(Protocol):
    def get_signer(self) -> Any: ...


class MintGateway(Protocol):
    def connect(self, signer: Any) -> "MintGateway": ...

    def mint(self, quantity: int, value: int) -> Any: ...


class InteractionState(enum.Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SETTLED = "settled"


@dataclass(frozen=True)
class MintRequest:
    quantity: int
    unit_cost: int

    @property
    def total_payment(self) -> int:
        return self.quantity * self.unit_cost


@dataclass(frozen=True)
class Confirmed:
    token_ids: tuple[int, ...]
    transaction_hash: Optional[str] = None


@dataclass(frozen=True)
class Rejected:
    reason: str


MintOutcome = Union[Confirmed, Rejected]


class MintController:
    """Submit mint requests and report their outcome to subscribers."""

    def __init__(
        self,
        provider: SignerProvider,
        contract: MintGateway,
        executor: Optional[Executor] = None,
        confirmation_timeout: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.contract = contract
        self.confirmation_timeout = confirmation_timeout
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="mint"
        )
        self._lock = threading.RLock()
        self._state = InteractionState.IDLE
        self._request: Optional[MintRequest] = None
        self.last_outcome: Optional[MintOutcome] = None
        self.last_total_payment: Optional[int] = None
        self._state_listeners: list[Callable[[InteractionState], None]] = []
        self._busy_listeners: list[Callable[[bool], None]] = []
        self._settled_listeners: list[Callable[[MintOutcome], None]] = []
        self._refresh_listeners: list[Callable[[], None]] = []
        self._notification_listeners: list[Callable[[str], None]] = []

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state in (
            InteractionState.SUBMITTING,
            InteractionState.AWAITING_CONFIRMATION,
        )

    @property
    def pending_request(self) -> Optional[MintRequest]:
        return self._request

    def subscribe_state(self, listener: Callable[[InteractionState], None]) -> None:
        self._state_listeners.append(listener)

    def subscribe_busy(self, listener: Callable[[bool], None]) -> None:
        self._busy_listeners.append(listener)

    def subscribe_settled(self, listener: Callable[[MintOutcome], None]) -> None:
        self._settled_listeners.append(listener)

    def subscribe_refresh(self, listener: Callable[[], None]) -> None:
        self._refresh_listeners.append(listener)

    def subscribe_notification(self, listener: Callable[[str], None]) -> None:
        self._notification_listeners.append(listener)

    def submit(self, quantity: int, unit_cost: int) -> None:
        """Start minting ``quantity`` tokens at ``unit_cost`` wei each.

        Ignored while a previous request is still outstanding. Quantity and
        price rules are left to the contract.
        """

        with self._lock:
            if self.busy:
                logger.debug("Ignoring mint of %s while a request is outstanding", quantity)
                return
            request = MintRequest(quantity, unit_cost)
            self._request = request
            self.last_total_payment = request.total_payment
            self._set_state(InteractionState.SUBMITTING)

        logger.info(
            "Submitting mint of %s token(s) for %s wei", quantity, request.total_payment
        )
        try:
            self._executor.submit(self._run, request)
        except RuntimeError as exc:
            logger.error("Mint worker unavailable: %s", exc)
            self._settle(Rejected(str(exc)))

    def shutdown(self, wait: bool = True) -> None:
        """Release the worker thread when the controller created it."""

        if self._owns_executor:
            self._executor.shutdown(wait=wait)

    def _run(self, request: MintRequest) -> None:
        try:
            signer = self.provider.get_signer()
            pending = self.contract.connect(signer).mint(
                request.quantity, request.total_payment
            )
        except Exception as exc:  # noqa: BLE001 - every gateway failure is a rejection
            self._reject(request, exc)
            return

        self._transition(InteractionState.AWAITING_CONFIRMATION)
        try:
            if self.confirmation_timeout is None:
                receipt = pending.wait()
            else:
                receipt = pending.wait(timeout=self.confirmation_timeout)
            outcome = Confirmed(
                token_ids=tuple(receipt.token_ids),
                transaction_hash=receipt.transaction_hash,
            )
        except Exception as exc:  # noqa: BLE001 - every gateway failure is a rejection
            self._reject(request, exc)
            return
        self._settle(outcome)

    def _reject(self, request: MintRequest, exc: Exception) -> None:
        logger.warning("Mint of %s rejected: %s", request.quantity, exc)
        self._settle(Rejected(str(exc) or exc.__class__.__name__))

    def _transition(self, state: InteractionState) -> None:
        with self._lock:
            self._set_state(state)

    def _settle(self, outcome: MintOutcome) -> None:
        with self._lock:
            self.last_outcome = outcome
            self._request = None
            self._set_state(InteractionState.SETTLED)

        self._notify(self._settled_listeners, outcome)

        if isinstance(outcome, Confirmed):
            logger.info("Mint confirmed: tokens %s", list(outcome.token_ids))
            self._notify(self._refresh_listeners)
        else:
            self._notify(self._notification_listeners, REJECTION_MESSAGE)

    def _set_state(self, state: InteractionState) -> None:
        was_busy = self.busy
        self._state = state
        self._notify(self._state_listeners, state)
        if self.busy != was_busy:
            self._notify(self._busy_listeners, self.busy)

    def _notify(self, listeners: list[Callable[..., None]], *args: Any) -> None:
        for listener in list(listeners):
            try:
                listener(*args)
            except Exception:  # noqa: BLE001 - a failing subscriber must not stall the request
                logger.exception("Mint listener %r failed", listener)
