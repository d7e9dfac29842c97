"""Selection notifications to the parent frame and best-effort event tracking"""

import atexit
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
import requests
from pydantic import ValidationError

from config import Config
from config_validator import TrackingPayload
from models import LocationRecord
from utils.circuit_breaker import CircuitBreaker
from utils.metrics import metrics_collector

logger = logging.getLogger(__name__)

PIN_CLICK = 'pin_click'
COORD_CLICK = 'coord_click'

# Dispatch outcomes reported by BestEffortSender.send
SENT_BEACON = 'beacon'
SENT_FALLBACK = 'queued'
REJECTED = 'rejected'
FAILED = 'failed'

_executor = None


def _tracking_executor() -> ThreadPoolExecutor:
    # Worker threads are joined at interpreter exit, so queued posts outlive the caller
    global _executor
    if _executor is None:
        _executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix='tracking')
        atexit.register(_executor.shutdown, wait=True)
    return _executor


def iso_timestamp() -> str:
    """UTC timestamp in the 2024-01-31T12:00:00.000Z form"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


class BestEffortSender:
    """One primary (beacon) and one fallback (async POST) delivery strategy.

    `send` never blocks on the network and never raises; the returned value
    only says which path the payload took.
    """

    def __init__(self, url: str, beacon: Optional[Callable[[str, bytes, str], object]] = None,
                 session: Optional[requests.Session] = None, executor=None,
                 breaker: Optional[CircuitBreaker] = None, timeout: int = None):
        self.url = url
        self.beacon = beacon
        self.session = session or requests.Session()
        self.executor = executor
        self.breaker = breaker or CircuitBreaker(
            failure_threshold=Config.TRACKING_FAILURE_THRESHOLD,
            recovery_timeout=Config.TRACKING_RECOVERY_TIMEOUT,
            name='tracking',
        )
        self.timeout = timeout or Config.TRACKING_TIMEOUT

    def send(self, payload: Dict) -> str:
        body = json.dumps(payload, ensure_ascii=False).encode('utf-8')

        if self.beacon is not None:
            try:
                self.beacon(self.url, body, 'application/json')
                return SENT_BEACON
            except Exception as e:
                logger.debug(f"Beacon unavailable, falling back to POST: {e}")

        if not self.breaker.allow_request():
            logger.warning("Tracking endpoint circuit open; event dropped")
            return REJECTED

        try:
            executor = self.executor or _tracking_executor()
            executor.submit(self._post, body)
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Tracking dispatch failed: {e}")
            return FAILED
        return SENT_FALLBACK

    def _post(self, body: bytes) -> None:
        try:
            response = self.session.post(
                self.url,
                data=body,
                headers={'Content-Type': 'application/json'},
                timeout=self.timeout,
            )
            response.raise_for_status()
            self.breaker.record_success()
        except requests.exceptions.RequestException as e:
            self.breaker.record_failure()
            logger.warning(f"Tracking proxy error: {e}")


class TrackingAdapter:
    """Fire-and-forget selection reporting; nothing here raises to the caller"""

    def __init__(self, sender: Optional[BestEffortSender] = None, parent=None, config=Config):
        self.config = config
        self.sender = sender or BestEffortSender(config.TRACKING_PROXY_URL)
        self.parent = parent

    def notify_selection(self, record: LocationRecord) -> bool:
        if self.parent is None:
            logger.debug("No parent frame; selection notification skipped")
            return False
        message = {
            'type': self.config.PARENT_MESSAGE_TYPE,
            'payload': {
                'moniteur_id': record.code_ohme_id or record.code,
                'code_mcf': record.code,
                'nom_complet': record.display_name,
            },
        }
        try:
            self.parent.post_message(message, self.config.PARENT_ORIGIN)
            return True
        except Exception as e:
            logger.warning(f"postMessage failed: {e}")
            return False

    def build_payload(self, record: LocationRecord, event_type: str) -> Dict:
        return {
            'event_type': event_type or PIN_CLICK,
            'code_ohme_id': record.code_ohme_id,
            'code_mcf': record.code,
            'nom_complet': record.display_name,
            'type_structure': record.category,
            'timestamp': iso_timestamp(),
        }

    def track_event(self, record: LocationRecord, event_type: str = PIN_CLICK) -> Optional[str]:
        if not self.config.TRACKING_ENABLED:
            return None
        if not record.code_ohme_id:
            logger.warning(f"Tracking skipped: no code_ohme_id for code {record.code}")
            metrics_collector.record_tracking(event_type, 'skipped')
            return None

        payload = self.build_payload(record, event_type)
        try:
            TrackingPayload(**payload)
        except ValidationError as e:
            logger.warning(f"Tracking payload rejected: {e}")
            metrics_collector.record_tracking(event_type, 'invalid')
            return None

        outcome = self.sender.send(payload)
        metrics_collector.record_tracking(event_type, outcome)
        return outcome

    def track_pin_click(self, record: LocationRecord) -> None:
        self.track_event(record, PIN_CLICK)
        self.notify_selection(record)

    def track_coord_click(self, record: LocationRecord) -> None:
        self.track_event(record, COORD_CLICK)
        self.notify_selection(record)
