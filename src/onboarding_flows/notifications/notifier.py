"""EmailNotifier — stage-completion e-mails through an HTTP mail endpoint.

Renders the subject and HTML body with Jinja2 from ``template/`` and POSTs
``{"to", "subject", "html"}`` as JSON to the configured endpoint.  Every
failure (unknown stage, transport error, non-2xx response) is logged and
reported as ``False``; nothing is raised.
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx
import jinja2

from onboarding_flows.interfaces import Notifier

logger = logging.getLogger(__name__)

_BODY_TEMPLATE = "stage_completed.html.jinja2"
_SUBJECT_TEMPLATE = "stage_completed.subject.jinja2"


class EmailNotifier(Notifier):
    """Sends "stage completed" e-mails.

    Args:
        endpoint_url: mail endpoint accepting ``{to, subject, html}``
        stage_names: stage id → display name; stages without a name are
            not announced
        dashboard_url: link included in the body (optional)
        api_key: sent as a bearer token when set
        timeout: request timeout in seconds
        client: optional shared ``httpx.AsyncClient`` (tests inject one
            with a mock transport); otherwise a client is opened per send
        template_dir: optional override for the template directory
    """

    def __init__(
        self,
        endpoint_url: str,
        stage_names: dict[int, str],
        *,
        dashboard_url: str | None = None,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        template_dir: Path | None = None,
    ) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._endpoint_url = endpoint_url
        self._stage_names = stage_names
        self._dashboard_url = dashboard_url
        self._api_key = api_key
        self._timeout = timeout
        self._client = client
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            autoescape=jinja2.select_autoescape(
                enabled_extensions=("html.jinja2",), default_for_string=False,
            ),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(
        self, stage_id: int, recipient_name: str | None = None
    ) -> tuple[str, str] | None:
        """Return ``(subject, html)``, or None if the stage has no name."""
        stage_name = self._stage_names.get(stage_id)
        if not stage_name:
            return None
        context = {
            "stage_name": stage_name,
            "user_name": recipient_name or "there",
            "dashboard_url": self._dashboard_url,
        }
        subject = self._env.get_template(_SUBJECT_TEMPLATE).render(**context).strip()
        html = self._env.get_template(_BODY_TEMPLATE).render(**context)
        return subject, html

    async def send(
        self,
        stage_id: int,
        recipient_email: str,
        recipient_name: str | None = None,
    ) -> bool:
        rendered = self.render(stage_id, recipient_name)
        if rendered is None:
            logger.warning("No stage name found for stage %d", stage_id)
            return False
        subject, html = rendered

        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        payload = {"to": recipient_email, "subject": subject, "html": html}

        try:
            if self._client is not None:
                resp = await self._client.post(
                    self._endpoint_url, json=payload, headers=headers,
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    resp = await client.post(
                        self._endpoint_url, json=payload, headers=headers,
                    )
        except httpx.HTTPError as exc:
            logger.error("Network error sending stage %d e-mail: %s", stage_id, exc)
            return False

        if resp.is_error:
            logger.error(
                "Mail endpoint rejected stage %d e-mail: HTTP %d %s",
                stage_id, resp.status_code, resp.text[:200],
            )
            return False

        logger.info("Sent stage %d completion e-mail", stage_id)
        return True
