"""
Survey REST API clients used by the web front-end.

All outbound HTTP calls from the web app to the survey API go through
``ApiClient``. The signed-in user's access token is forwarded as
``Authorization: Bearer``; the caller's X-Request-ID is propagated so API
logs line up with web logs.

Response mapping:
    2xx        → parsed JSON body (None for empty bodies)
    401        → ApiUnauthorizedError
    403        → ApiForbiddenError
    404        → ApiNotFoundError
    anything else, timeouts, connection errors → SurveyApiError

Testability: pass a mock ``session`` (and ``token_provider``) to the clients
instead of letting them create a real requests.Session.

Usage:
    from surveys.integrations.survey_api import survey_client
    surveys = survey_client.get_surveys_for_user(user_id)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import requests
from flask import current_app, g, has_request_context, session as flask_session

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30


class SurveyApiError(Exception):
    """The survey API call failed for a reason other than 401/403/404."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ApiUnauthorizedError(SurveyApiError):
    """The API rejected the forwarded access token (missing or expired)."""


class ApiForbiddenError(SurveyApiError):
    pass


class ApiNotFoundError(SurveyApiError):
    pass


def session_access_token() -> str | None:
    """Access token of the signed-in web user, from the Flask session."""
    if not has_request_context():
        return None
    return flask_session.get("access_token")


class ApiClient:
    """Thin JSON-over-HTTP client for the survey API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: int | None = None,
        session: requests.Session | None = None,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._base_url = base_url
        self._timeout = timeout
        # Inject custom session for testing; create real one lazily otherwise.
        self._session: requests.Session | None = session
        self._token_provider = token_provider or session_access_token

    # ── HTTP session ─────────────────────────────────────────────────────────

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @property
    def base_url(self) -> str:
        return (self._base_url or current_app.config["SURVEY_API_BASE_URL"]).rstrip("/")

    @property
    def timeout(self) -> int:
        if self._timeout is not None:
            return self._timeout
        return current_app.config.get("SURVEY_API_TIMEOUT", _DEFAULT_TIMEOUT)

    # ── Requests ─────────────────────────────────────────────────────────────

    def _headers(self, authenticated: bool) -> dict:
        headers = {"Accept": "application/json"}
        if authenticated:
            token = self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        if has_request_context() and getattr(g, "request_id", None):
            headers["X-Request-ID"] = g.request_id
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        json_body: dict | None = None,
        params: dict | None = None,
        authenticated: bool = True,
    ) -> Any:
        """Execute one request and return the decoded body, or raise."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        kwargs: dict[str, Any] = {"headers": self._headers(authenticated), "timeout": self.timeout}
        if json_body is not None:
            kwargs["json"] = json_body
        if params:
            kwargs["params"] = params

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout as exc:
            logger.warning("Survey API timed out after %ss: %s %s", self.timeout, method, url)
            raise SurveyApiError(f"Request timed out after {self.timeout}s") from exc
        except requests.RequestException as exc:
            logger.warning("Survey API network error: %s %s: %s", method, url, exc)
            raise SurveyApiError(str(exc)[:500]) from exc
        duration_ms = (time.perf_counter() - t0) * 1000

        logger.debug("Survey API %s %s → %d", method, url, resp.status_code,
                     extra={"duration_ms": duration_ms, "status": resp.status_code})

        if resp.status_code == 401:
            raise ApiUnauthorizedError(f"{method} {path} unauthorized", status_code=401)
        if resp.status_code == 403:
            raise ApiForbiddenError(f"{method} {path} forbidden", status_code=403)
        if resp.status_code == 404:
            raise ApiNotFoundError(f"{method} {path} not found", status_code=404)
        if not resp.ok:
            logger.warning("Survey API failed status=%d %s %s body=%s",
                           resp.status_code, method, url, resp.text[:500])
            raise SurveyApiError(f"HTTP {resp.status_code}: {resp.text[:500]}", status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise SurveyApiError("Survey API returned a non-JSON body", status_code=resp.status_code) from exc


# ═══════════════════════════════════════════════════════════════════════════
#  SURVEYS
# ═══════════════════════════════════════════════════════════════════════════

class SurveyClient:
    def __init__(self, api: ApiClient | None = None) -> None:
        self.api = api or ApiClient()

    def get_survey(self, survey_id: int) -> dict:
        return self.api.request("GET", f"surveys/{survey_id}")

    def get_surveys_for_user(self, user_id: int) -> dict:
        return self.api.request("GET", f"users/{user_id}/surveys")

    def get_surveys_for_tenant(self, tenant_id: int) -> dict:
        return self.api.request("GET", f"tenants/{tenant_id}/surveys")

    def get_published_surveys(self) -> list:
        return self.api.request("GET", "surveys/published", authenticated=False)

    def create_survey(self, survey: dict) -> dict:
        return self.api.request("POST", "surveys", json_body={"title": survey.get("title")})

    def update_survey(self, survey: dict) -> dict:
        return self.api.request(
            "PUT", f"surveys/{survey['id']}",
            json_body={"id": survey["id"], "title": survey.get("title")},
        )

    def delete_survey(self, survey_id: int) -> dict:
        return self.api.request("DELETE", f"surveys/{survey_id}")

    def publish_survey(self, survey_id: int) -> dict:
        return self.api.request("PUT", f"surveys/{survey_id}/publish")

    def unpublish_survey(self, survey_id: int) -> dict:
        return self.api.request("PUT", f"surveys/{survey_id}/unpublish")

    def get_survey_contributors(self, survey_id: int) -> dict:
        return self.api.request("GET", f"surveys/{survey_id}/contributors")

    def process_pending_contributor_requests(self) -> dict:
        return self.api.request("POST", "surveys/processpendingcontributorrequests")

    def add_contributor_request(self, survey_id: int, email_address: str) -> dict:
        return self.api.request(
            "POST", f"surveys/{survey_id}/contributorrequests",
            json_body={"survey_id": survey_id, "email_address": email_address},
        )


# ═══════════════════════════════════════════════════════════════════════════
#  QUESTIONS
# ═══════════════════════════════════════════════════════════════════════════

def _question_body(question: dict) -> dict:
    return {
        "survey_id": question.get("survey_id"),
        "text": question.get("text"),
        "type": question.get("type"),
        "possible_answers": question.get("possible_answers"),
    }


class QuestionClient:
    def __init__(self, api: ApiClient | None = None) -> None:
        self.api = api or ApiClient()

    def get_question(self, question_id: int) -> dict:
        return self.api.request("GET", f"questions/{question_id}")

    def create_question(self, question: dict) -> dict:
        return self.api.request(
            "POST", f"surveys/{question['survey_id']}/questions",
            json_body=_question_body(question),
        )

    def update_question(self, question: dict) -> dict:
        body = _question_body(question)
        body["id"] = question["id"]
        return self.api.request("PUT", f"questions/{question['id']}", json_body=body)

    def delete_question(self, question_id: int) -> dict:
        return self.api.request("DELETE", f"questions/{question_id}")


# Module-level singletons; views import these and tests patch them.
survey_client = SurveyClient()
question_client = QuestionClient()
