from __future__ import annotations

import asyncio
import enum
import logging
import time
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import jdatetime
from aiogram import Bot
from aiogram.exceptions import TelegramRetryAfter

from ..config import MESSAGE_LIMIT
from ..provider.base import CandidateListing

LOGGER = logging.getLogger(__name__)
TIME_FORMATS = ("%Y-%m-%d %H:%M:%S",)


class SegmentState(enum.Enum):
    QUEUED = "queued"
    SENDING = "sending"
    DELIVERED = "delivered"
    DROPPED = "dropped"


class TelegramNotifier:
    """Buffers alert segments and delivers them through a single worker.

    The worker sends strictly in enqueue order and keeps at least
    ``min_interval`` seconds between successful sends. A flood-control reply
    is retried once after the advised delay; every other failure drops the
    segment.
    """

    def __init__(
        self,
        *,
        bot: Bot,
        chat_id: int | str,
        thread_id: int | None = None,
        min_interval: float = 1.2,
        queue_size: int = 100,
        message_limit: int = MESSAGE_LIMIT,
        timezone_name: str = "UTC",
    ) -> None:
        self._bot = bot
        self._chat_id = chat_id
        self._thread_id = thread_id
        self._min_interval = min_interval
        self._message_limit = message_limit
        self._tz = ZoneInfo(timezone_name)
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max(queue_size, 1))
        self._worker: asyncio.Task[None] | None = None
        self._last_sent: float | None = None
        self.delivered = 0
        self.dropped = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run_worker(), name="telegram-notifier")

    async def shutdown(self, timeout: float) -> None:
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            LOGGER.warning("Notification queue not drained before shutdown", extra={"pending": self.pending})
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def send_alert(self, listing: CandidateListing) -> None:
        """Queue an alert; waits only while the buffer is full."""
        text = format_message(listing, tz=self._tz)
        for segment in split_message(text, self._message_limit):
            await self._queue.put(segment)
        LOGGER.debug(
            "Alert queued",
            extra={"state": SegmentState.QUEUED.value, "source": listing.source, "external_id": listing.external_id},
        )

    async def _run_worker(self) -> None:
        while True:
            segment = await self._queue.get()
            try:
                state = await self._deliver(segment)
                if state is SegmentState.DELIVERED:
                    self.delivered += 1
                else:
                    self.dropped += 1
            finally:
                self._queue.task_done()

    async def _deliver(self, text: str) -> SegmentState:
        await self._wait_for_slot()
        LOGGER.debug("Sending segment", extra={"state": SegmentState.SENDING.value, "length": len(text)})
        try:
            await self._post(text)
        except TelegramRetryAfter as exc:
            LOGGER.warning("Telegram rate limit hit, retrying", extra={"retry_after": exc.retry_after})
            await asyncio.sleep(exc.retry_after)
            try:
                await self._post(text)
            except Exception:
                LOGGER.exception("Telegram retry failed, dropping segment", extra={"chat_id": self._chat_id})
                return SegmentState.DROPPED
            self._last_sent = time.monotonic()
            LOGGER.info("Telegram alert sent after retry", extra={"chat_id": self._chat_id})
            return SegmentState.DELIVERED
        except Exception:
            LOGGER.exception("Telegram send failed, dropping segment", extra={"chat_id": self._chat_id})
            return SegmentState.DROPPED
        self._last_sent = time.monotonic()
        LOGGER.info("Telegram alert sent", extra={"chat_id": self._chat_id})
        return SegmentState.DELIVERED

    async def _wait_for_slot(self) -> None:
        if self._last_sent is None or self._min_interval <= 0:
            return
        sleep_for = self._last_sent + self._min_interval - time.monotonic()
        if sleep_for > 0:
            await asyncio.sleep(sleep_for)

    async def _post(self, text: str) -> None:
        await self._bot.send_message(
            chat_id=self._chat_id,
            text=text,
            message_thread_id=self._thread_id,
        )


def split_message(message: str, limit: int = MESSAGE_LIMIT) -> list[str]:
    """Cut ``message`` into ordered chunks of at most ``limit`` code points."""
    if limit < 1:
        raise ValueError("limit must be positive")
    if len(message) <= limit:
        return [message]
    return [message[start : start + limit] for start in range(0, len(message), limit)]


def format_message(listing: CandidateListing, *, tz: ZoneInfo | None = None) -> str:
    skills = ", ".join(listing.skills) if listing.skills else "—"
    approved_at = format_timestamp(listing.approved_at, tz)
    closed_at = format_timestamp(listing.bidding_closed_at, tz)

    lines = [
        f"📢 {listing.title}",
        f"🌐 منبع: {listing.source}",
        f"💰 بودجه: {listing.budget_text}",
    ]
    if listing.description:
        lines.append(f"📝 توضیحات: {listing.description}")
    lines.append(f"🛠 مهارت‌ها: {skills}")
    if approved_at:
        lines.append(f"✅ تایید شده: {approved_at}")
    if closed_at:
        lines.append(f"⏰ پایان مناقصه: {closed_at}")
    if listing.bids_count is not None:
        lines.append(f"📦 تعداد پیشنهادها: {listing.bids_count}")
    lines.append(f"🔗 لینک: {listing.link}")
    return "\n".join(lines)


def format_timestamp(value: str, tz: ZoneInfo | None = None) -> str:
    """Render a source timestamp as a Jalali ``yyyy/MM/dd HH:mm`` string.

    Unparsable or out-of-range values render as an empty string so a bad
    date never keeps the alert from being sent.
    """
    parsed = _parse_timestamp(value)
    if parsed is None:
        return ""
    try:
        if tz is not None:
            parsed = parsed.astimezone(tz)
        return jdatetime.datetime.fromgregorian(datetime=parsed).strftime("%Y/%m/%d %H:%M")
    except (OverflowError, ValueError):
        LOGGER.debug("Timestamp out of range", extra={"value": value})
        return ""


def _parse_timestamp(value: str) -> datetime | None:
    value = (value or "").strip()
    if not value:
        return None
    parsed: datetime | None = None
    try:
        parsed = datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
    except ValueError:
        for fmt in TIME_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
