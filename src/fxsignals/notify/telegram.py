"""Telegram notifications for new trade opportunities.

The notifier is an :class:`~fxsignals.core.events.EventBus` subscriber that
hands alerts to a background thread: delivery failures are logged and never
reach the analysis jobs.
"""

from __future__ import annotations

import logging
import queue
import threading
from datetime import datetime, timezone

import requests

from fxsignals.core.constants import TELEGRAM_API_URL
from fxsignals.core.credentials import TelegramCredentials
from fxsignals.core.database import ConsolidationRepository, PairRepository
from fxsignals.core.events import OpportunityCreated
from fxsignals.core.exceptions import FxSignalsError, NotificationError
from fxsignals.core.retry import retry
from fxsignals.models.consolidation import Consolidation
from fxsignals.models.opportunity import Opportunity
from fxsignals.models.pair import Pair

logger = logging.getLogger(__name__)


def format_message(pair: Pair, opportunity: Opportunity, consolidation: Consolidation | None) -> str:
    """Markdown alert text for *opportunity*."""
    lines = [
        "🚀 *TRADING OPPORTUNITY DETECTED*",
        "",
        f"📈 **{pair.symbol}** - On trend {pair.trend_direction or 'N/A'}",
        "",
    ]
    if consolidation is not None:
        broken_at = consolidation.broken_at or consolidation.end_timestamp
        when = datetime.fromtimestamp(broken_at, tz=timezone.utc).strftime("%Y-%m-%d %H:%M")
        lines += [
            "🎯 *Trap detected and broken*",
            f"Time: {when} UTC",
            "",
            f"📊 *Support:* {consolidation.support_level:.5f}",
            f"📈 *Resistance:* {consolidation.resistance_level:.5f}",
            "",
        ]
    lines += [
        f"⚡ *Possible {opportunity.signal_type} Signal*",
        f"Entry {opportunity.entry_rate:.5f} / SL {opportunity.stop_loss_rate:.5f}"
        f" / TP {opportunity.take_profit_rate:.5f}",
        "⏳ *Wait for retest*",
    ]
    return "\n".join(lines)


class TelegramNotifier:
    """Posts opportunity alerts to one Telegram chat.

    :meth:`on_opportunity` only queues the event; a daemon thread started on
    first use does the HTTP work, so a slow or failing Telegram never holds
    up ``OpportunityRepository.create`` or the scheduler.

    Parameters
    ----------
    credentials:
        Bot token and chat id.  With invalid credentials every send is a
        logged no-op.
    pairs, consolidations:
        Used to enrich the message with the pair symbol, trend and levels.
    session:
        Optional pre-configured :class:`requests.Session`.
    """

    def __init__(
        self,
        credentials: TelegramCredentials,
        pairs: PairRepository,
        consolidations: ConsolidationRepository,
        api_url: str = TELEGRAM_API_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._credentials = credentials
        self._pairs = pairs
        self._consolidations = consolidations
        self._api_url = api_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()
        self._queue: queue.Queue[OpportunityCreated | None] = queue.Queue()
        self._worker: threading.Thread | None = None
        self._worker_lock = threading.Lock()

    def on_opportunity(self, event: OpportunityCreated) -> None:
        """EventBus handler for :class:`OpportunityCreated`; returns at once."""
        with self._worker_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._drain, name="telegram-notifier", daemon=True)
                self._worker.start()
        self._queue.put(event)

    def flush(self) -> None:
        """Block until every queued alert has been handled."""
        self._queue.join()

    def close(self, timeout: float = 30.0) -> None:
        """Deliver what is queued, then stop the delivery thread."""
        with self._worker_lock:
            worker = self._worker
            self._worker = None
        if worker is not None and worker.is_alive():
            self._queue.put(None)
            worker.join(timeout)

    def notify(self, event: OpportunityCreated) -> bool:
        """Build and send the alert for *event* on the calling thread."""
        opportunity = event.opportunity
        try:
            pair = self._pairs.get_pair(opportunity.pair_id)
            consolidation = (
                self._consolidations.get(opportunity.consolidation_id)
                if opportunity.consolidation_id is not None
                else None
            )
        except FxSignalsError as exc:
            logger.error("Cannot build alert for opportunity %s: %s", opportunity.id, exc)
            return False
        return self.send_message(format_message(pair, opportunity, consolidation))

    def _drain(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is None:
                    return
                self.notify(event)
            except Exception:
                logger.exception("Telegram alert for opportunity %s failed", event.opportunity.id)
            finally:
                self._queue.task_done()

    def send_message(self, text: str) -> bool:
        """Send *text* as Markdown; return ``True`` when Telegram accepted it."""
        if not self._credentials.is_valid:
            logger.warning("Telegram credentials missing; message not sent")
            return False

        body = {
            "chat_id": self._credentials.chat_id,
            "text": text,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        try:
            self._post(body)
        except NotificationError as exc:
            logger.error("Error sending Telegram message: %s", exc)
            return False

        logger.info("Telegram message sent")
        return True

    @retry(max_retries=2, base_delay=1.0, max_delay=5.0, exceptions=(NotificationError,))
    def _post(self, body: dict[str, object]) -> None:
        url = f"{self._api_url}/bot{self._credentials.bot_token}/sendMessage"
        try:
            resp = self._session.post(url, json=body, timeout=self._timeout)
        except requests.RequestException as exc:
            raise NotificationError(f"Telegram request failed: {exc}") from exc

        if resp.status_code != 200:
            raise NotificationError(f"Telegram returned HTTP {resp.status_code}")
        try:
            result = resp.json()
        except ValueError as exc:
            raise NotificationError("Telegram returned a non-JSON response") from exc
        if not isinstance(result, dict) or not result.get("ok"):
            raise NotificationError(f"Telegram API returned error: {result}")
