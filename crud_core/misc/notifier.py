"""
CRUD core callback library to handle remote push notifications of domain events
"""

import asyncio
import logging
import datetime
import threading
from queue import Empty, Queue
from typing import ClassVar, List, Optional

import aiohttp

from .. import schemas
from ..schemas.config import CallbackTarget


EVENT_QUEUE_WAIT_TIME = 2
EVENT_QUEUE_BUFFER_TIME = 0.25


class Callback:
    """
    Collection of class methods to easily trigger push notifications (HTTP callbacks)

    Every pushed event is logged. If callback targets have been configured,
    the events are additionally queued and delivered in batches by a worker
    thread, which POSTs an ``EventsNotification`` to every target URL.
    """

    queue = Queue()  # type: ClassVar[Queue[schemas.Event]]
    logger: ClassVar[logging.Logger] = logging.getLogger(__name__)
    shutdown_event: ClassVar[threading.Event] = threading.Event()
    targets: ClassVar[List[CallbackTarget]] = []
    _thread: ClassVar[Optional[threading.Thread]] = None
    _session: ClassVar[Optional[aiohttp.ClientSession]] = None

    @classmethod
    def configure(cls, targets: List[CallbackTarget]):
        cls.targets = list(targets)
        cls.shutdown_event.clear()
        cls.logger.debug(f"Configured {len(cls.targets)} callback targets")

    @classmethod
    async def _publish_event(cls, events: List[schemas.Event], url: str, shared_secret: Optional[str]):
        events_notification = schemas.EventsNotification(events=events, number=len(events))
        try:
            response = await cls._session.post(
                url,
                json=events_notification.model_dump(mode="json"),
                timeout=aiohttp.ClientTimeout(total=2),
                headers=shared_secret and {"Authorization": f"Bearer {shared_secret}"}
            )
            if response.status != 200:
                cls.logger.warning(f"Callback for {url!r} failed with response code {response.status!r}")
        except aiohttp.ClientConnectionError as exc:
            cls.logger.info(
                f"{type(exc).__name__} during callback to 'POST {url}' "
                f"with the following arguments: {', '.join(map(repr, exc.args))}"
            )
        except asyncio.TimeoutError:
            cls.logger.warning(f"Timeout while trying 'POST {url}'")

    @classmethod
    async def _run_worker(cls):
        if cls._session is None:
            cls._session = aiohttp.ClientSession()
        while not cls.shutdown_event.is_set():
            try:
                events = [cls.queue.get(block=True, timeout=EVENT_QUEUE_WAIT_TIME)]
            except Empty:
                continue
            while True:
                try:
                    events.append(cls.queue.get(block=True, timeout=EVENT_QUEUE_BUFFER_TIME))
                except Empty:
                    break
            targets = list(cls.targets)
            cls.logger.debug(f"Handling {len(events)} events for {len(targets)} callbacks ...")
            for target in targets:
                await cls._publish_event(events, target.url, target.shared_secret)
        await cls._session.close()
        cls._session = None
        cls.logger.info("Stopped event notifier thread")

    @classmethod
    def _run_thread(cls):
        if cls._thread is None or not cls._thread.is_alive():
            cls._thread = threading.Thread(target=lambda: asyncio.run(cls._run_worker()), daemon=False)
            cls._thread.start()
            cls.logger.debug(f"Enumerating threads: {threading.enumerate()}")

    @classmethod
    def push(cls, event: schemas.EventType, data: Optional[dict] = None):
        cls.logger.info(f"Event {event.value}: {data or {}}")
        if not cls.targets:
            return
        cls._run_thread()
        cls.queue.put(schemas.Event(event=event, timestamp=int(datetime.datetime.now().timestamp()), data=data or {}))

    @classmethod
    def shutdown(cls):
        cls.shutdown_event.set()
