"""
Mail transport backed by a remote letter server.

``RestStoreClient`` implements the same contract as the server's JSON mail
store, so a :class:`~legen.server.pipeline.SendPipeline` can stamp and sign
locally and hand the finished message to the server over HTTP.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from legen.common.config import Config
from legen.common.exceptions import NotFoundError, TransportError
from legen.common.logging_utils import configure_logging
from legen.common.models import (
    ClientConfig,
    EmailRecord,
    OutgoingEmail,
    UserProfile,
)

DEFAULT_TIMEOUT = 10.0  # seconds


class RestStoreClient:
    """Talks to the ``/records`` endpoints of a letter server."""

    def __init__(
        self,
        client_config: ClientConfig | None = None,
        http: requests.Session | None = None,
    ):
        self.config = Config()
        client_config = client_config or ClientConfig()

        self.server_url = (client_config.server_url or self.config.SERVER_URL).rstrip("/")
        self.user_id = client_config.user_id
        self.timeout = (
            client_config.timeout
            if client_config.timeout is not None
            else DEFAULT_TIMEOUT
        )
        self.http = http or requests.Session()

        # Setup logging
        configure_logging(
            client_config.log_level
            if client_config.log_level is not None
            else self.config.LOG_LEVEL
        )
        self.logger = logging.getLogger(__name__)

    def _request(
        self, method: str, path: str, user_id: str | None = None, **kwargs: Any
    ) -> requests.Response:
        headers = kwargs.pop("headers", {})
        caller = user_id or self.user_id
        if caller:
            headers["X-User-Id"] = caller
        url = f"{self.server_url}{path}"
        try:
            r = self.http.request(
                method, url, headers=headers, timeout=self.timeout, **kwargs
            )
        except requests.RequestException as err:
            msg = f"Could not reach {url}: {err}"
            raise TransportError(msg) from err

        if r.status_code == 404:
            raise NotFoundError(_detail(r))
        if r.status_code >= 400:
            msg = f"{method} {path} failed with {r.status_code}: {_detail(r)}"
            raise TransportError(msg)
        return r

    def health(self) -> dict[str, Any]:
        return self._request("GET", "/health").json()

    def recipients(self, exclude_role: str | None = None) -> list[UserProfile]:
        params = {"exclude_role": exclude_role} if exclude_role else None
        r = self._request("GET", "/recipients", params=params)
        return [UserProfile.model_validate(item) for item in r.json()]

    def send(self, email: OutgoingEmail) -> EmailRecord:
        try:
            r = self._request(
                "POST",
                "/records",
                user_id=email.user_id,
                json=email.model_dump(mode="json"),
            )
            # pydantic and JSON decode errors are both ValueErrors
            record = EmailRecord.model_validate(r.json())
        except (NotFoundError, ValueError) as err:
            msg = f"Remote store rejected the message: {err}"
            raise TransportError(msg) from err
        self.logger.info("Remote store accepted email %s", record.id)
        return record

    def get(self, email_id: str) -> EmailRecord:
        r = self._request("GET", f"/records/{email_id}")
        return EmailRecord.model_validate(r.json())

    def list_for_user(self, user_id: str, email: str) -> list[EmailRecord]:
        # The server resolves the mailbox address from the user id
        r = self._request("GET", "/records", user_id=user_id)
        return [EmailRecord.model_validate(item) for item in r.json()]


def _detail(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text
    if isinstance(body, dict) and "detail" in body:
        return str(body["detail"])
    return r.text
