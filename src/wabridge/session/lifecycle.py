"""Session lifecycle controller.

Owns the one live (or pending) protocol session and keeps BridgeState in
line with it:

- start() opens a session asynchronously and returns immediately
- the session pushes typed events onto a queue
- one pump task applies each event to completion (no locks needed)
- transient closes are retried with bounded exponential backoff
- logout and exhausted retries are terminal until an operator steps in
"""

import asyncio
import importlib
from functools import partial
from typing import Any, Callable

from wabridge.infra.settings import DEFAULT_BROWSER
from wabridge.observability.correlation import correlation_scope, session_correlation_id
from wabridge.observability.logging import get_logger
from wabridge.observability.redaction import safe_log_context
from wabridge.whatsapp.qr import QrRenderer

from .backoff import BackoffPolicy
from .events import (
    ConnectionClosed,
    ConnectionOpened,
    CredentialsUpdated,
    MessagesUpserted,
    QrChallenge,
    SessionEvent,
)
from .protocol import CredentialStore, DisconnectReason, SessionFactory, SessionOptions
from .state import BridgeState

logger = get_logger(__name__)

# schedule(delay_seconds, callback) -> handle with .cancel()
Scheduler = Callable[[float, Callable[[], None]], Any]


def _call_later(delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


def load_session_factory(path: str) -> SessionFactory:
    """Instantiate a session factory from a "module:attribute" path.

    Raises:
        RuntimeError: If the module or attribute cannot be found.
    """
    module_name, _, attr = path.partition(":")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise RuntimeError(f"cannot load session factory {path!r}: {exc}") from exc
    return target() if isinstance(target, type) else target


class SessionLifecycleController:
    """Drives (re)connection, backoff and terminal-state detection."""

    def __init__(
        self,
        state: BridgeState,
        factory: SessionFactory,
        credentials: CredentialStore,
        *,
        policy: BackoffPolicy | None = None,
        qr_renderer: QrRenderer | None = None,
        browser: tuple[str, str, str] = DEFAULT_BROWSER,
        schedule: Scheduler = _call_later,
    ) -> None:
        self._state = state
        self._factory = factory
        self._credentials = credentials
        self._policy = policy or BackoffPolicy()
        self._qr = qr_renderer or QrRenderer()
        self._browser = browser
        self._schedule = schedule

        self._queue: asyncio.Queue[tuple[int, SessionEvent]] = asyncio.Queue()
        self._generation = 0
        self._closed_generation = 0
        self._connect_task: asyncio.Task | None = None
        self._pump_task: asyncio.Task | None = None
        self._reconnect_timer: Any = None

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def generation(self) -> int:
        """Sequence number of the most recent connect attempt."""
        return self._generation

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_timer is not None

    # --- entry points ---

    def start(self) -> None:
        """Begin a connect attempt unless one is already in flight or live.

        Must be called from the event loop. Supersedes a pending reconnect timer.
        """
        if self._connect_task is not None and not self._connect_task.done():
            return
        if self._state.session is not None:
            return

        self._cancel_reconnect_timer()

        loop = asyncio.get_running_loop()
        if self._pump_task is None or self._pump_task.done():
            self._pump_task = loop.create_task(self.run())

        self._generation += 1
        self._connect_task = loop.create_task(self._connect(self._generation))

    async def stop(self) -> None:
        """Cancel timers and tasks and close the live session, if any."""
        self._cancel_reconnect_timer()

        for task in (self._connect_task, self._pump_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._connect_task = None
        self._pump_task = None

        session = self._state.detach_session()
        self._state.mark_disconnected()
        if session is not None:
            await session.close()
        logger.info("session lifecycle stopped")

    async def run(self) -> None:
        """Pump events from the session queue until cancelled."""
        while True:
            generation, event = await self._queue.get()
            with correlation_scope(session_correlation_id(generation)):
                try:
                    self.handle_event(event, generation)
                except Exception:
                    logger.exception(
                        "session event handler failed",
                        extra={"extra_fields": safe_log_context(event=type(event).__name__)},
                    )
                finally:
                    self._queue.task_done()

    def emit(self, generation: int, event: SessionEvent) -> None:
        """Queue an event tagged with the session generation that produced it."""
        self._queue.put_nowait((generation, event))

    # --- connect ---

    async def _connect(self, generation: int) -> None:
        emit = partial(self.emit, generation)
        try:
            creds = self._credentials.load()
            version, is_latest = await self._factory.fetch_latest_version()
            logger.info(
                "using protocol version",
                extra={
                    "extra_fields": safe_log_context(
                        version=".".join(str(p) for p in version),
                        is_latest=is_latest,
                        generation=generation,
                    )
                },
            )
            session = await self._factory.open(
                SessionOptions(credentials=creds, version=tuple(version), browser=self._browser),
                emit,
            )
        except Exception as e:
            # Failed attempt counts as a transient close
            logger.warning(
                "session start failed",
                extra={
                    "extra_fields": safe_log_context(
                        error_type=type(e).__name__, error=str(e), generation=generation
                    )
                },
            )
            emit(ConnectionClosed(status_code=None, error=str(e)))
            return

        # Superseded, or the session already reported a close while opening
        if generation != self._generation or generation == self._closed_generation:
            await session.close()
            return
        self._state.attach_session(session)

    # --- state machine ---

    def handle_event(self, event: SessionEvent, generation: int | None = None) -> None:
        """Apply one session event.

        Events from a superseded session, or from a session that already
        reported its close, are dropped.
        """
        if generation is not None and (
            generation != self._generation or generation == self._closed_generation
        ):
            logger.debug(
                "stale session event dropped",
                extra={
                    "extra_fields": safe_log_context(
                        event=type(event).__name__, generation=generation
                    )
                },
            )
            return

        if isinstance(event, CredentialsUpdated):
            self._credentials.save(event.credentials)
        elif isinstance(event, QrChallenge):
            self._on_qr(event)
        elif isinstance(event, ConnectionOpened):
            self._state.mark_connected()
            logger.info("connected to whatsapp")
        elif isinstance(event, ConnectionClosed):
            self._on_close(event)
        elif isinstance(event, MessagesUpserted):
            self._state.buffer.ingest_upsert(event.messages, event.sync_type)
        else:
            logger.warning(
                "unknown session event ignored",
                extra={"extra_fields": safe_log_context(event=type(event).__name__)},
            )

    def _on_qr(self, event: QrChallenge) -> None:
        try:
            data_url = self._qr.to_data_url(event.code)
        except Exception as e:
            logger.warning(
                "qr rendering failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )
            data_url = None

        try:
            self._qr.to_terminal(event.code)
        except Exception as e:
            logger.debug(
                "terminal qr output failed",
                extra={"extra_fields": safe_log_context(error_type=type(e).__name__)},
            )

        self._state.mark_qr_pending(data_url)
        logger.info("qr code generated, scan with your phone")

    def _on_close(self, event: ConnectionClosed) -> None:
        self._closed_generation = self._generation
        self._state.detach_session()
        self._state.mark_disconnected()

        if event.status_code == DisconnectReason.LOGGED_OUT:
            logger.error(
                "logged out, delete the auth directory and restart to re-authenticate",
                extra={"extra_fields": safe_log_context(status_code=event.status_code)},
            )
            return

        if not self._policy.allows(self._state.reconnect_attempts):
            logger.error(
                "max reconnect attempts reached, restart the bridge manually",
                extra={
                    "extra_fields": safe_log_context(
                        status_code=event.status_code,
                        attempts=self._state.reconnect_attempts,
                    )
                },
            )
            return

        attempt = self._state.next_reconnect_attempt()
        delay = self._policy.delay_for(attempt)
        logger.warning(
            "disconnected, reconnect scheduled",
            extra={
                "extra_fields": safe_log_context(
                    status_code=event.status_code,
                    error=event.error,
                    delay_seconds=delay,
                    attempt=attempt,
                    max_attempts=self._policy.max_attempts,
                )
            },
        )
        self._cancel_reconnect_timer()
        self._reconnect_timer = self._schedule(delay, self._fire_reconnect)

    def _fire_reconnect(self) -> None:
        self._reconnect_timer = None
        self.start()

    def _cancel_reconnect_timer(self) -> None:
        if self._reconnect_timer is not None:
            self._reconnect_timer.cancel()
            self._reconnect_timer = None
