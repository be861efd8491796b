"""Unit tests for the PI Web API HTTP client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pisync.sources.osipi.osipi_errors import FetchFailed
from pisync.sources.osipi.osipi_http import PiWebApiClient

OPTIONS = {"pi_base_url": "https://pi.test/piwebapi/", "access_token": "tok"}


def response(status=200, payload=None, text=""):
    r = MagicMock()
    r.status_code = status
    r.text = text
    r.json.return_value = payload if payload is not None else {}
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} Client Error")
    else:
        r.raise_for_status.return_value = None
    return r


class TestInit:
    def test_bearer_token(self):
        client = PiWebApiClient(OPTIONS)
        assert client.base_url == "https://pi.test/piwebapi"
        assert client.session.headers["Authorization"] == "Bearer tok"
        assert client.verify_ssl is True
        assert client.timeout == 60

    def test_basic_auth(self):
        client = PiWebApiClient({"pi_base_url": "pi.test", "username": "u", "password": "p"})
        assert client.base_url == "https://pi.test"
        assert client.session.auth == ("u", "p")
        assert "Authorization" not in client.session.headers

    def test_anonymous(self):
        client = PiWebApiClient(
            {"pi_base_url": "https://pi.test", "allow_anonymous": "true", "verify_ssl": "false"}
        )
        assert client.session.auth is None
        assert client.verify_ssl is False

    def test_missing_credentials(self):
        with pytest.raises(ValueError, match="authentication"):
            PiWebApiClient({"pi_base_url": "https://pi.test"})

    def test_missing_base_url(self):
        with pytest.raises(ValueError, match="pi_base_url"):
            PiWebApiClient({"access_token": "tok"})


class TestGetJson:
    def test_relative_path_and_params(self):
        client = PiWebApiClient({**OPTIONS, "timeout": "5"})
        with patch.object(client.session, "get", return_value=response(payload={"Name": "A"})) as get:
            assert client.get_json("/attributes", params={"path": "x|A"}) == {"Name": "A"}
        get.assert_called_once_with(
            "https://pi.test/piwebapi/attributes",
            params={"path": "x|A"},
            timeout=5,
            verify=True,
        )

    def test_absolute_link_passes_through(self):
        client = PiWebApiClient(OPTIONS)
        link = "https://other.test/piwebapi/streams/W1/interpolated"
        with patch.object(client.session, "get", return_value=response(payload={"Items": []})) as get:
            client.get_json(link)
        assert get.call_args[0][0] == link

    def test_http_error_becomes_fetch_failed(self):
        client = PiWebApiClient(OPTIONS)
        with patch.object(client.session, "get", return_value=response(404, text="not found")):
            with pytest.raises(FetchFailed) as exc:
                client.get_json("/attributes")
        assert exc.value.status_code == 404
        assert exc.value.url == "https://pi.test/piwebapi/attributes"
        assert "not found" in str(exc.value)
        assert isinstance(exc.value.__cause__, requests.HTTPError)

    def test_connection_error_becomes_fetch_failed(self):
        client = PiWebApiClient(OPTIONS)
        with patch.object(client.session, "get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(FetchFailed, match="refused") as exc:
                client.get_json("/attributes")
        assert exc.value.status_code is None

    def test_invalid_json_becomes_fetch_failed(self):
        client = PiWebApiClient(OPTIONS)
        bad = response()
        bad.json.side_effect = ValueError("no json")
        with patch.object(client.session, "get", return_value=bad):
            with pytest.raises(FetchFailed, match="not JSON"):
                client.get_json("/attributes")

    def test_no_retry_on_server_error(self):
        client = PiWebApiClient(OPTIONS)
        with patch.object(client.session, "get", return_value=response(500)) as get:
            with pytest.raises(FetchFailed):
                client.get_json("/attributes")
        assert get.call_count == 1
