"""IMAP email source with retry logic and proper resource management."""

from __future__ import annotations

import email as email_lib
import imaplib
import socket
from datetime import datetime, timedelta, timezone
from email.message import Message
from typing import List, Optional

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from job_tracker.config import AppConfig
from job_tracker.email.parser import EmailRecord, parse_email_message

logger = structlog.get_logger(__name__)

# Transient errors worth retrying
_RETRYABLE = (
    imaplib.IMAP4.error,
    socket.timeout,
    ConnectionResetError,
    ConnectionRefusedError,
    OSError,
)


def imap_since_criterion(since: datetime) -> str:
    """Format an IMAP ``SINCE`` search key (``DD-Mon-YYYY``)."""
    return f"SINCE {since.strftime('%d-%b-%Y')}"


class IMAPEmailSource:
    """Pull recent messages from an IMAP mailbox as :class:`EmailRecord` values.

    Usage::

        with IMAPEmailSource(config) as source:
            records = source.fetch_recent(lookback_days=30)

    Records come back most recent first. Dedup against already imported
    messages is left to the caller (see ``SqlJobStore.imported_message_ids``).
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._mail: imaplib.IMAP4_SSL | None = None

    # ── Context manager ───────────────────────────────────
    def __enter__(self) -> "IMAPEmailSource":
        self.connect()
        return self

    def __exit__(self, *exc: object) -> None:
        self.disconnect()

    # ── Connection ────────────────────────────────────────
    @retry(
        retry=retry_if_exception_type(_RETRYABLE),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=15),
        reraise=True,
    )
    def connect(self) -> None:
        """Establish the IMAP connection and select the configured folder."""
        cfg = self._config
        if not cfg.imap_configured:
            raise RuntimeError("IMAP is not configured (IMAP_HOST / EMAIL_USERNAME)")

        logger.info("imap_connecting", host=cfg.imap_host, port=cfg.imap_port)
        self._mail = imaplib.IMAP4_SSL(cfg.imap_host, cfg.imap_port, timeout=cfg.imap_timeout_sec)

        logger.info("imap_logging_in", username=cfg.email_username)
        self._mail.login(cfg.email_username, cfg.email_password.get_secret_value())

        status, _ = self._mail.select(cfg.email_folder, readonly=True)
        if status != "OK":
            raise RuntimeError(f"Cannot select folder: {cfg.email_folder}")
        logger.info("imap_folder_selected", folder=cfg.email_folder)

    def disconnect(self) -> None:
        """Close the IMAP connection, logging (not raising) logout failures."""
        if self._mail is None:
            return
        try:
            self._mail.logout()
            logger.debug("imap_disconnected")
        except (imaplib.IMAP4.error, OSError) as exc:
            logger.debug("imap_logout_failed", error=str(exc))
        finally:
            self._mail = None

    def _ensure_connected(self) -> imaplib.IMAP4_SSL:
        if self._mail is None:
            raise RuntimeError("IMAP client not connected, call connect() first")
        return self._mail

    # ── Fetching ──────────────────────────────────────────
    def search_since(self, since: datetime) -> List[int]:
        """Return UIDs of messages received on or after *since*, ascending."""
        mail = self._ensure_connected()
        status, data = mail.uid("SEARCH", None, f"({imap_since_criterion(since)})")
        if status != "OK":
            raise RuntimeError("IMAP UID SEARCH failed")
        uids = sorted(int(t) for t in (data[0] or b"").split())
        logger.info("imap_uids_found", since=since.date().isoformat(), count=len(uids))
        return uids

    @retry(
        retry=retry_if_exception_type(_RETRYABLE),
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def fetch_message(self, uid: int) -> Optional[Message]:
        """Fetch a single message by UID, or None when the server returns nothing."""
        mail = self._ensure_connected()
        status, fetched = mail.uid("FETCH", str(uid), "(RFC822)")
        if status != "OK" or not fetched or fetched[0] is None:
            logger.warning("imap_fetch_failed", uid=uid)
            return None

        raw_data = fetched[0]
        raw_email = raw_data[1] if isinstance(raw_data, tuple) and len(raw_data) >= 2 else None
        if not isinstance(raw_email, bytes) or not raw_email:
            logger.warning("imap_empty_payload", uid=uid)
            return None
        return email_lib.message_from_bytes(raw_email)

    def fetch_recent(
        self,
        lookback_days: Optional[int] = None,
        max_results: Optional[int] = None,
    ) -> List[EmailRecord]:
        """Return records from the lookback window, most recent first.

        Args:
            lookback_days: Window size; defaults to ``scan_lookback_days``.
            max_results: Cap on the number of records; defaults to
                ``max_scan_emails``.
        """
        cfg = self._config
        days = cfg.scan_lookback_days if lookback_days is None else lookback_days
        limit = cfg.max_scan_emails if max_results is None else max_results

        since = datetime.now(timezone.utc) - timedelta(days=days)
        uids = self.search_since(since)
        # Highest UIDs are the newest arrivals.
        selected = list(reversed(uids))[:limit]
        if len(uids) > len(selected):
            logger.info("imap_uid_capped", total=len(uids), kept=len(selected))

        records: List[EmailRecord] = []
        for uid in selected:
            msg = self.fetch_message(uid)
            if msg is None:
                continue
            records.append(parse_email_message(msg))
        logger.info("imap_fetch_complete", fetched=len(records), lookback_days=days)
        return records
