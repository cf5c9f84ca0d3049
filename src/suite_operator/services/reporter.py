"""Installation event reporting."""

import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from suite_operator.api.models import EventPayload, EventType
from suite_operator.models.installation import Installation

REASON_INSTALLATION_COMPLETED = "InstallationCompleted"
REASON_PROCESSING_ERROR = "ProcessingError"


class EventReporter:
    """Records installation events and forwards them to an event sink."""

    def __init__(self, report_url: Optional[str] = None):
        """Initialize event reporter.

        Args:
            report_url: Endpoint receiving event payloads; events are only
                logged when empty
        """
        self.logger = logging.getLogger("suite_operator.reporter")
        self.report_url = report_url or None

    async def emit(
        self,
        installation: Installation,
        event_type: EventType,
        reason: str,
        message: str,
    ) -> None:
        """Log an event and send it to the event sink.

        Note:
            Failures are logged but not raised to avoid blocking reconciliation
        """
        payload = EventPayload(
            installation=installation.key,
            type=event_type,
            reason=reason,
            message=message,
            timestamp=datetime.now(timezone.utc),
        )

        level = logging.WARNING if event_type == EventType.WARNING else logging.INFO
        self.logger.log(level, f"[{installation.key}] {reason}: {message}")

        if self.report_url is None:
            return

        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.post(
                    self.report_url,
                    json=payload.model_dump(mode="json"),
                )
                response.raise_for_status()
                self.logger.debug("Event sent successfully")

        except httpx.HTTPError as e:
            self.logger.warning(
                f"Failed to report event to {self.report_url}: {e}. "
                f"Continuing reconciliation..."
            )
        except Exception as e:
            self.logger.error(
                f"Unexpected error reporting event to {self.report_url}: {e}",
                exc_info=True,
            )

    async def stage_completed(self, installation: Installation, stage: str) -> None:
        await self.emit(
            installation,
            EventType.NORMAL,
            REASON_INSTALLATION_COMPLETED,
            f"{stage} stage has reconciled successfully",
        )

    async def product_completed(self, installation: Installation, product: str) -> None:
        await self.emit(
            installation,
            EventType.NORMAL,
            REASON_INSTALLATION_COMPLETED,
            f"{product} was installed successfully",
        )

    async def processing_error(self, installation: Installation, message: str) -> None:
        await self.emit(installation, EventType.WARNING, REASON_PROCESSING_ERROR, message)
