"""
Customer Session

Everything one ordering device owns: its cart, its order history and
the remembered customer name / table id. The durable fields go through
the session's storage; the cart lives in memory only.

Author: Storefront Team
Version: 1.0.0
"""

import logging
import re
import threading
import uuid
from collections import OrderedDict
from pathlib import Path
from typing import Optional

from storefront.services.cart import Cart
from storefront.services.history import LocalOrderHistory
from storefront.services.storage import BaseStorage, JsonFileStorage, StorageError

logger = logging.getLogger(__name__)

CUSTOMER_NAME_KEY = "paypya_customer_name"
TABLE_NUMBER_KEY = "paypya_table_number"
TABLE_LOCKED_KEY = "paypya_table_locked"

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class CustomerSession:
    """Explicit per-device context passed to the cart and checkout."""

    def __init__(self, session_id: str, storage: BaseStorage):
        self.session_id = session_id
        self.storage = storage
        self.cart = Cart()
        self.history = LocalOrderHistory(storage)
        self.submitting = False

    def _get(self, key: str) -> Optional[str]:
        try:
            return self.storage.get(key)
        except StorageError as e:
            logger.warning(f"Session {self.session_id}: cannot read {key}: {e}")
            return None

    @property
    def customer_name(self) -> Optional[str]:
        return self._get(CUSTOMER_NAME_KEY)

    @property
    def table_number(self) -> Optional[str]:
        return self._get(TABLE_NUMBER_KEY)

    @property
    def table_locked(self) -> bool:
        return self._get(TABLE_LOCKED_KEY) == "true"

    def lock_table(self, table_number: str) -> None:
        """Pin the table id read from a QR code; checkout cannot change it."""
        self.storage.set(TABLE_NUMBER_KEY, table_number)
        self.storage.set(TABLE_LOCKED_KEY, "true")
        logger.info(f"Session {self.session_id}: table {table_number} locked by QR")

    def remember_customer(self, customer_name: str, table_number: str) -> None:
        """Store the details used for the last checkout."""
        self.storage.set(CUSTOMER_NAME_KEY, customer_name)
        if not self.table_locked:
            self.storage.set(TABLE_NUMBER_KEY, table_number)

    def resolve_table(self, requested: str) -> str:
        """A QR-locked table wins over whatever the form submitted."""
        if self.table_locked and self.table_number:
            return self.table_number
        return requested


class SessionRegistry:
    """
    Sessions of the running process, keyed by session id.

    Durable state survives a restart through one JSON file per session;
    carts do not. At most max_sessions are held in memory; the least
    recently used idle session is dropped first and reloads its durable
    state from disk on its next request, with an empty cart.
    """

    def __init__(self, directory: Path, lock_timeout: int = 30, max_sessions: int = 1000):
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, CustomerSession] = OrderedDict()
        self._guard = threading.Lock()

    @staticmethod
    def new_session_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def is_valid_id(session_id: str) -> bool:
        return bool(_SESSION_ID_RE.match(session_id))

    def get(self, session_id: str) -> CustomerSession:
        """
        Return the session for an id, creating it on first use.

        Raises:
            ValueError: If the id is not a safe file name
        """
        if not self.is_valid_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")

        with self._guard:
            session = self._sessions.get(session_id)
            if session is not None:
                self._sessions.move_to_end(session_id)
            else:
                storage = JsonFileStorage(
                    self.directory / f"{session_id}.json",
                    lock_timeout=self.lock_timeout,
                )
                session = CustomerSession(session_id, storage)
                self._sessions[session_id] = session
                logger.debug(f"Session {session_id} opened")
                self._evict(keep=session_id)
            return session

    def _evict(self, keep: str) -> None:
        # Sessions mid-checkout keep their in-flight guard
        for session_id in list(self._sessions):
            if len(self._sessions) <= self.max_sessions:
                break
            if session_id != keep and not self._sessions[session_id].submitting:
                del self._sessions[session_id]
                logger.debug(f"Session {session_id} evicted")

    def __len__(self) -> int:
        return len(self._sessions)
