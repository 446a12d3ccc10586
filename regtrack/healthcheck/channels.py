"""Notification channels for broken-link reports.

Channels deliver a ``BrokenLinkReport`` and return True on success.
Delivery problems are logged and reported as False; they never raise
into the health check.
"""

import html
import logging
from abc import ABC, abstractmethod

import httpx

from regtrack.healthcheck.config import NotificationConfig
from regtrack.healthcheck.schemas import BrokenLinkReport

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Abstract base for broken-link report delivery."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this channel (e.g. 'webhook', 'email')."""

    @abstractmethod
    async def send(self, report: BrokenLinkReport) -> bool:
        """Deliver a report through this channel.

        Returns:
            True if delivery succeeded, False otherwise.
        """


class ReportWebhookChannel(NotificationChannel):
    """POSTs ``{"broken_links": [...]}`` to a report endpoint."""

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self._url = url
        self._headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "webhook"

    async def send(self, report: BrokenLinkReport) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._url,
                    json=report.to_payload(),
                    headers=self._headers,
                )
                if resp.is_success:
                    return True
                logger.warning(
                    "Report webhook %s returned %d for run %s",
                    self._url, resp.status_code, report.run_id,
                )
                return False
        except httpx.TimeoutException:
            logger.warning(
                "Report webhook %s timed out for run %s", self._url, report.run_id,
            )
            return False
        except Exception as e:
            logger.warning(
                "Report webhook %s failed for run %s: %s",
                self._url, report.run_id, e,
            )
            return False


def render_report_html(report: BrokenLinkReport) -> str:
    """Render the report as an HTML email body, one table per jurisdiction."""
    sections = []
    for jurisdiction, links in report.by_jurisdiction().items():
        rows = "".join(
            "<tr>"
            f"<td>{html.escape(link.title)}</td>"
            f'<td><a href="{html.escape(link.url, quote=True)}">'
            f"{html.escape(link.url)}</a></td>"
            f"<td>{html.escape(link.error)}</td>"
            "</tr>"
            for link in links
        )
        sections.append(
            f"<h3>{html.escape(jurisdiction)} ({len(links)})</h3>"
            '<table border="1" cellpadding="6" cellspacing="0">'
            "<tr><th>Title</th><th>URL</th><th>Error</th></tr>"
            f"{rows}</table>"
        )

    return (
        "<h2>Broken Regulation URLs Detected</h2>"
        f"<p>{len(report.links)} of {report.total} URLs failed validation "
        f"on {report.checked_at.strftime('%Y-%m-%d %H:%M UTC')} "
        f"(run {html.escape(report.run_id)}).</p>"
        + "".join(sections)
    )


def report_subject(report: BrokenLinkReport) -> str:
    count = len(report.links)
    noun = "URL" if count == 1 else "URLs"
    return f"⚠️ {count} Broken Regulation {noun} Detected"


class ResendEmailChannel(NotificationChannel):
    """Sends an HTML report through the Resend email API."""

    def __init__(
        self,
        api_key: str,
        recipients: list[str],
        sender: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
    ) -> None:
        self._api_key = api_key
        self._recipients = recipients
        self._sender = sender
        self._api_url = api_url
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "email"

    def _build_payload(self, report: BrokenLinkReport) -> dict:
        return {
            "from": self._sender,
            "to": self._recipients,
            "subject": report_subject(report),
            "html": render_report_html(report),
        }

    async def send(self, report: BrokenLinkReport) -> bool:
        if not self._recipients:
            logger.warning("Email channel has no recipients; skipping run %s", report.run_id)
            return False
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(
                    self._api_url,
                    json=self._build_payload(report),
                    headers={"Authorization": f"Bearer {self._api_key}"},
                )
                if resp.is_success:
                    return True
                logger.warning(
                    "Resend returned %d for run %s: %s",
                    resp.status_code, report.run_id, resp.text[:200],
                )
                return False
        except httpx.TimeoutException:
            logger.warning("Resend timed out for run %s", report.run_id)
            return False
        except Exception as e:
            logger.warning("Resend failed for run %s: %s", report.run_id, e)
            return False


def build_channels(config: NotificationConfig) -> list[NotificationChannel]:
    """Channels enabled by the given configuration."""
    channels: list[NotificationChannel] = []
    if config.report_webhook_url:
        channels.append(ReportWebhookChannel(
            url=config.report_webhook_url,
            token=config.report_webhook_token,
            timeout=config.timeout_seconds,
        ))
    if config.resend_api_key:
        channels.append(ResendEmailChannel(
            api_key=config.resend_api_key,
            recipients=config.email_to,
            sender=config.email_from,
            api_url=config.resend_api_url,
            timeout=config.timeout_seconds,
        ))
    return channels
