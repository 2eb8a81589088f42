"""
Tests for the Freshservice and Azure DevOps REST clients against a fake requests session.
"""

import json

import pytest
import requests

from api_utils import validate_api_response
from devops_client import AzureDevOpsClient
from errors import RemoteError
from freshservice_client import FreshserviceClient


class FakeResponse:
    def __init__(self, status_code=200, payload=None, content=None):
        self.status_code = status_code
        self._payload = payload
        if content is not None:
            self.content = content
        else:
            self.content = json.dumps(payload).encode() if payload is not None else b""
        self.text = self.content.decode(errors="replace")

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    """Records calls and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []
        self.headers = {}
        self.auth = None

    def _next(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def put(self, url, **kwargs):
        return self._next("PUT", url, **kwargs)

    def patch(self, url, **kwargs):
        return self._next("PATCH", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


def freshservice(*responses):
    session = FakeSession(*responses)
    client = FreshserviceClient("https://acme.freshservice.com/", "key-123", "status:2 AND priority:>1", session=session)
    return client, session


def devops(*responses):
    session = FakeSession(*responses)
    client = AzureDevOpsClient("https://devops.example.com/", "Portal", "svc", "pat", session=session)
    return client, session


def test_validate_api_response():
    assert validate_api_response(FakeResponse(200, {"a": 1}), "op") == {"a": 1}
    assert validate_api_response(FakeResponse(204), "op", [204]) is None

    with pytest.raises(RemoteError) as excinfo:
        validate_api_response(FakeResponse(400, {"message": "bad"}), "Create ADO Bug")
    assert excinfo.value.status == 400
    assert excinfo.value.data == {"message": "bad"}
    assert "(status 400)" in str(excinfo.value)

    with pytest.raises(RemoteError):
        validate_api_response(FakeResponse(200, content=b"<html>"), "op")


def test_freshservice_requires_credentials():
    with pytest.raises(ValueError):
        FreshserviceClient("", "key")


def test_fetch_page():
    client, session = freshservice(FakeResponse(200, {"tickets": [{"id": 1, "subject": "A"}, {"id": 2}]}))

    tickets = client.fetch_page(2, 5)

    assert [ticket.id for ticket in tickets] == [1, 2]
    method, url, _ = session.calls[0]
    assert method == "GET"
    assert url.startswith("https://acme.freshservice.com/api/v2/tickets/filter?page=2&per_page=5&query=%22")
    assert "status%3A2%20AND%20priority%3A%3E1" in url
    assert session.auth == ("key-123", "X")


def test_fetch_page_empty():
    client, _ = freshservice(FakeResponse(200, {"tickets": []}))
    assert client.fetch_page(3, 5) == []


def test_fetch_detail():
    payload = {"ticket": {"id": 7, "subject": "Crash", "requester": {"name": "Jane", "email": "jane@example.com"}}}
    client, session = freshservice(FakeResponse(200, payload))

    ticket = client.fetch_detail(7)

    assert ticket.subject == "Crash"
    assert ticket.requester.email == "jane@example.com"
    assert session.calls[0][1].endswith("/api/v2/tickets/7?include=tags,requester,department")


def test_fetch_detail_missing_ticket():
    client, _ = freshservice(FakeResponse(200, {}))

    with pytest.raises(RemoteError):
        client.fetch_detail(7)


def test_fetch_agent():
    client, _ = freshservice(FakeResponse(200, {"agent": {"id": 3, "first_name": "Sam", "last_name": "Agent"}}))
    assert client.fetch_agent(3).full_name() == "Sam Agent"


def test_update_ticket():
    client, session = freshservice(FakeResponse(200, {"ticket": {"id": 7}}))
    body = {"custom_fields": {"source_control_reference": "9000"}}

    assert client.update_ticket(7, body) == {"id": 7}
    method, url, kwargs = session.calls[0]
    assert method == "PUT"
    assert url == "https://acme.freshservice.com/api/v2/tickets/7"
    assert kwargs["json"] == body


def test_transport_errors_become_remote_errors():
    client, _ = freshservice(requests.exceptions.Timeout("read timed out"))

    with pytest.raises(RemoteError, match="Timeout error"):
        client.fetch_agent(3)


def test_fetch_attachment_bytes():
    client, _ = freshservice(FakeResponse(200, content=b"\x89PNG"), FakeResponse(404, content=b"gone"))

    assert client.fetch_attachment_bytes("https://files.example.com/a.png") == b"\x89PNG"
    with pytest.raises(RemoteError):
        client.fetch_attachment_bytes("https://files.example.com/b.png")


def test_create_work_item():
    client, session = devops(FakeResponse(200, {"id": 9000, "rev": 1, "fields": {"System.Title": "Crash"}}))
    patch = [{"op": "add", "path": "/fields/System.Title", "value": "Crash"}]

    work_item = client.create_work_item(patch)

    assert work_item.id == 9000
    method, url, kwargs = session.calls[0]
    assert method == "PATCH"
    assert url == "https://devops.example.com/DefaultCollection/Portal/_apis/wit/workitems/$Bug"
    assert kwargs["params"] == {"api-version": "7.1"}
    assert kwargs["headers"]["Content-Type"] == "application/json-patch+json"
    assert kwargs["json"] == patch


def test_create_work_item_rejected():
    client, _ = devops(FakeResponse(400, {"message": "TF401320: Rule Error"}))

    with pytest.raises(RemoteError) as excinfo:
        client.create_work_item([])
    assert excinfo.value.status == 400


def test_get_work_item():
    client, session = devops(FakeResponse(200, {"id": 9001, "fields": {"System.State": "Active"}}))

    work_item = client.get_work_item(9001)

    assert work_item.get_field("System.State") == "Active"
    assert session.calls[0][1].endswith("/_apis/wit/workitems/9001")


def test_upload_and_link_attachment():
    client, session = devops(
        FakeResponse(201, {"id": "a1", "url": "https://devops.example.com/_apis/wit/attachments/a1"}),
        FakeResponse(200, {"id": 9000}),
    )

    upload = client.upload_attachment("crash.png", "image/png", b"\x89PNG")
    client.link_attachment(9000, upload["url"], "Attached from Freshservice ticket 101")

    assert upload == {"id": "a1", "url": "https://devops.example.com/_apis/wit/attachments/a1"}
    _, _, upload_kwargs = session.calls[0]
    assert upload_kwargs["params"]["fileName"] == "crash.png"
    assert upload_kwargs["data"] == b"\x89PNG"

    method, url, link_kwargs = session.calls[1]
    assert method == "PATCH"
    assert url.endswith("/_apis/wit/workitems/9000")
    assert link_kwargs["json"][0]["path"] == "/relations/-"
    assert link_kwargs["json"][0]["value"]["url"] == upload["url"]


def test_upload_without_url_fails():
    client, _ = devops(FakeResponse(201, {"id": "a1"}))

    with pytest.raises(RemoteError, match="returned no url"):
        client.upload_attachment("crash.png", "image/png", b"data")
