from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from ..constants import LOADING_MESSAGES, LOADING_MESSAGE_INTERVAL_SECONDS
from ..models.record import AnyInput, RecordVariant
from ..models.status import AppStatus, ClassifiedError, LastRequestInfo, StatusSnapshot


@dataclass(frozen=True)
class LastRequest:
    variant: RecordVariant
    payload: AnyInput


class StatusTracker:
    """Process-wide ``IDLE -> LOADING -> (IDLE | ERROR)`` state.

    ``try_begin`` is the only way into ``LOADING`` and doubles as the mutual
    exclusion between submit and sync: it checks and sets under one lock and
    refuses while another operation holds ``LOADING``.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status = AppStatus.idle
        self._error: ClassifiedError | None = None
        self._last_request: LastRequest | None = None
        self._loading_since: float | None = None

    @property
    def status(self) -> AppStatus:
        return self._status

    @property
    def error(self) -> ClassifiedError | None:
        return self._error

    @property
    def last_request(self) -> LastRequest | None:
        return self._last_request

    @property
    def is_loading(self) -> bool:
        return self._status == AppStatus.loading

    def try_begin(self) -> bool:
        with self._lock:
            if self._status == AppStatus.loading:
                return False
            self._status = AppStatus.loading
            self._error = None
            self._loading_since = time.monotonic()
            return True

    def finish(self) -> None:
        with self._lock:
            self._status = AppStatus.idle
            self._error = None
            self._loading_since = None

    def fail(self, error: ClassifiedError) -> None:
        with self._lock:
            self._status = AppStatus.error
            self._error = error
            self._loading_since = None

    def dismiss(self) -> bool:
        with self._lock:
            if self._status != AppStatus.error:
                return False
            self._status = AppStatus.idle
            self._error = None
            return True

    def remember_request(self, variant: RecordVariant, payload: AnyInput) -> None:
        with self._lock:
            self._last_request = LastRequest(variant=variant, payload=payload)

    def forget_request(self) -> None:
        with self._lock:
            self._last_request = None

    def _loading_message(self) -> str | None:
        if self._status != AppStatus.loading or self._loading_since is None:
            return None
        elapsed = time.monotonic() - self._loading_since
        idx = int(elapsed / LOADING_MESSAGE_INTERVAL_SECONDS) % len(LOADING_MESSAGES)
        return LOADING_MESSAGES[idx]

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            last = None
            if self._last_request is not None:
                last = LastRequestInfo(
                    variant=self._last_request.variant,
                    client_name=self._last_request.payload.client.name,
                )
            return StatusSnapshot(
                status=self._status,
                error=self._error,
                last_request=last,
                loading_message=self._loading_message(),
                can_retry=self._status == AppStatus.error and self._last_request is not None,
            )
