"""
Survey web view tests.

The survey API client is replaced with a MagicMock; these tests cover what
the views do with its answers: templates, messages, redirects and the
403 / 404 / unexpected error mapping.
"""

from unittest.mock import patch

import pytest
from conftest import CSRF, sign_in_web

from surveys.integrations.survey_api import ApiForbiddenError, ApiNotFoundError, ApiUnauthorizedError

CLIENT = "surveys.blueprints.survey_views_bp.survey_client"

DRAFT = {"id": 1, "title": "Draft survey", "published": False, "questions": [], "contributors": []}
LIVE = {"id": 1, "title": "Live survey", "published": True, "questions": [], "contributors": []}


@pytest.fixture()
def api():
    with patch(CLIENT) as mock:
        yield mock


@pytest.fixture()
def signed_in(web_client):
    sign_in_web(web_client)
    return web_client


def _text(res):
    return res.get_data(as_text=True)


class TestAccessControl:
    def test_anonymous_is_sent_to_sign_in(self, web_client, api):
        res = web_client.get("/survey/")
        assert res.status_code == 302
        assert "/account/sign-in" in res.headers["Location"]
        api.get_surveys_for_user.assert_not_called()

    def test_post_without_csrf_token_rejected(self, signed_in, api):
        res = signed_in.post("/survey/create", data={"title": "X"})
        assert res.status_code == 400
        api.create_survey.assert_not_called()

    def test_create_needs_creator_role(self, web_client, api):
        sign_in_web(web_client, roles=())
        res = web_client.get("/survey/create")
        assert res.status_code == 403
        assert "not authorized" in _text(res)

    def test_published_list_is_public(self, web_client, api):
        api.get_published_surveys.return_value = [{"id": 1, "title": "Open poll"}]
        res = web_client.get("/survey/published")
        assert res.status_code == 200
        assert "Open poll" in _text(res)


class TestIndex:
    def test_pending_requests_processed_before_listing(self, signed_in, api):
        api.get_surveys_for_user.return_value = {
            "published": [], "own": [{"id": 1, "title": "Mine", "published": False}], "contribute": [],
        }
        res = signed_in.get("/survey/")
        assert res.status_code == 200
        assert "Mine" in _text(res)
        assert "Create survey" in _text(res)

        names = [c[0] for c in api.mock_calls]
        assert names.index("process_pending_contributor_requests") < names.index("get_surveys_for_user")
        api.get_surveys_for_user.assert_called_once_with(1)

    def test_reader_sees_no_create_link(self, web_client, api):
        sign_in_web(web_client, roles=())
        api.get_surveys_for_user.return_value = {"published": [], "own": [], "contribute": []}
        assert "Create survey" not in _text(web_client.get("/survey/"))

    def test_tenant_listing(self, signed_in, api):
        api.get_surveys_for_tenant.return_value = {
            "published": [{"id": 2, "title": "Everyone", "published": True}], "unpublished": [],
        }
        res = signed_in.get("/survey/tenant")
        assert "Everyone" in _text(res)
        api.get_surveys_for_tenant.assert_called_once_with(1)


class TestErrorMapping:
    def test_forbidden(self, signed_in, api):
        api.get_survey.side_effect = ApiForbiddenError("no", 403)
        res = signed_in.get("/survey/1")
        assert res.status_code == 403
        assert "Forbidden Access to the survey" in _text(res)

    def test_not_found(self, signed_in, api):
        api.get_survey.side_effect = ApiNotFoundError("gone", 404)
        res = signed_in.get("/survey/1")
        assert res.status_code == 404
        assert "The survey can not be found" in _text(res)

    def test_unexpected(self, signed_in, api):
        api.get_survey.side_effect = RuntimeError("boom")
        res = signed_in.get("/survey/1")
        assert res.status_code == 500
        assert "Unexpected Error" in _text(res)

    def test_expired_token_signs_out_and_returns_to_sign_in(self, signed_in, api):
        api.get_survey.side_effect = ApiUnauthorizedError("expired", 401)
        res = signed_in.get("/survey/1")
        assert res.status_code == 302
        assert "/account/sign-in" in res.headers["Location"]
        assert "next=" in res.headers["Location"]
        with signed_in.session_transaction() as sess:
            assert "claims" not in sess
            assert "access_token" not in sess


class TestCreateAndEdit:
    def test_create_redirects_to_edit(self, signed_in, api):
        api.create_survey.return_value = {"id": 5}
        res = signed_in.post("/survey/create", data={"title": "New one", "csrf_token": CSRF})
        assert res.status_code == 302
        assert res.headers["Location"].endswith("/survey/5/edit")
        api.create_survey.assert_called_once_with({"title": "New one"})

    def test_create_blank_title(self, signed_in, api):
        res = signed_in.post("/survey/create", data={"title": " ", "csrf_token": CSRF})
        assert res.status_code == 400
        api.create_survey.assert_not_called()

    def test_create_forbidden_rerenders_form(self, signed_in, api):
        api.create_survey.side_effect = ApiForbiddenError("no", 403)
        res = signed_in.post("/survey/create", data={"title": "New one", "csrf_token": CSRF})
        assert res.status_code == 403
        assert 'value="New one"' in _text(res)

    def test_edit_published_survey_refused(self, signed_in, api):
        api.get_survey.return_value = dict(LIVE)
        res = signed_in.get("/survey/1/edit")
        assert "You need to unpublish it in order to edit." in _text(res)

    def test_edit_title_binds_id_title_and_existing_title(self, signed_in, api):
        res = signed_in.post("/survey/1/edit-title", data={
            "title": "Renamed", "existing_title": "Draft survey", "published": "on", "csrf_token": CSRF,
        })
        assert res.status_code == 302
        api.update_survey.assert_called_once_with(
            {"id": 1, "title": "Renamed", "existing_title": "Draft survey"}
        )

    def test_delete_confirms(self, signed_in, api):
        api.get_survey.return_value = dict(DRAFT)
        api.delete_survey.return_value = dict(DRAFT)
        res = signed_in.post("/survey/1/delete", data={"csrf_token": CSRF})
        assert "The following survey has been deleted." in _text(res)
        api.delete_survey.assert_called_once_with(1)


class TestContributors:
    def _existing(self, api):
        api.get_survey_contributors.return_value = {
            "survey_id": 1,
            "contributors": [{"id": 2, "display_name": "Bob", "email": "bob@contoso.com"}],
            "requests": [{"id": 1, "survey_id": 1, "email_address": "carol@contoso.com"}],
        }

    def _post(self, client, email):
        return client.post("/survey/1/request-contributor", data={"email_address": email, "csrf_token": CSRF})

    def test_already_contributor_ignores_case(self, signed_in, api):
        self._existing(api)
        res = self._post(signed_in, "Bob@Contoso.com")
        assert "Bob@Contoso.com is already a contributor" in _text(res)
        api.add_contributor_request.assert_not_called()

    def test_already_requested_ignores_case(self, signed_in, api):
        self._existing(api)
        res = self._post(signed_in, "CAROL@contoso.com")
        assert "CAROL@contoso.com has already been requested before" in _text(res)
        api.add_contributor_request.assert_not_called()

    def test_new_request(self, signed_in, api):
        self._existing(api)
        res = self._post(signed_in, "dave@contoso.com")
        assert "Contribution Requested for dave@contoso.com" in _text(res)
        api.add_contributor_request.assert_called_once_with(1, "dave@contoso.com")

    def test_invalid_email_returns_to_contributors(self, signed_in, api):
        res = self._post(signed_in, "nope")
        assert res.status_code == 302
        assert res.headers["Location"].endswith("/survey/1/contributors")
        api.add_contributor_request.assert_not_called()


class TestPublishing:
    def test_publish(self, signed_in, api):
        api.get_survey.return_value = dict(DRAFT)
        api.publish_survey.return_value = dict(LIVE)
        res = signed_in.post("/survey/1/publish", data={"csrf_token": CSRF})
        assert "The following survey has been published." in _text(res)

    def test_publish_already_published_is_a_no_op(self, signed_in, api):
        api.get_survey.return_value = dict(LIVE)
        res = signed_in.post("/survey/1/publish", data={"csrf_token": CSRF})
        assert "The survey is already published" in _text(res)
        api.publish_survey.assert_not_called()

    def test_unpublish_already_unpublished_is_a_no_op(self, signed_in, api):
        api.get_survey.return_value = dict(DRAFT)
        res = signed_in.get("/survey/1/unpublish")
        assert "The survey is already unpublished" in _text(res)
        api.unpublish_survey.assert_not_called()

    def test_unpublish(self, signed_in, api):
        api.get_survey.return_value = dict(LIVE)
        api.unpublish_survey.return_value = dict(DRAFT)
        res = signed_in.post("/survey/1/unpublish", data={"csrf_token": CSRF})
        assert "The following survey has been unpublished." in _text(res)
