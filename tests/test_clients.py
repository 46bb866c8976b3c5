from unittest.mock import MagicMock

import requests

from classify_client import ClassifyClient
from tika_client import TikaClient


def _mock_resp(text: str) -> MagicMock:
    mock = MagicMock()
    mock.text = text
    mock.content = text.encode("utf-8")
    mock.encoding = "utf-8"
    return mock


def test_tika_extract_text_puts_bytes_with_mime_type() -> None:
    session = MagicMock()
    session.put.return_value = _mock_resp("ISBN 978-0-7356-8293-1")
    client = TikaClient("tika.local", 9998, session=session)

    assert client.extract_text(b"%PDF", "application/pdf") == "ISBN 978-0-7356-8293-1"

    args, kwargs = session.put.call_args
    assert args[0] == "http://tika.local:9998/tika"
    assert kwargs["data"] == b"%PDF"
    assert kwargs["headers"]["Content-Type"] == "application/pdf"
    assert kwargs["headers"]["Accept"] == "text/plain"


def test_tika_failure_returns_empty_text() -> None:
    session = MagicMock()
    session.put.side_effect = requests.ConnectionError("refused")
    assert TikaClient(session=session).extract_text(b"x", "text/plain") == ""


def test_tika_error_status_returns_empty_text() -> None:
    session = MagicMock()
    response = _mock_resp("Unprocessable")
    response.raise_for_status.side_effect = requests.HTTPError("422")
    session.put.return_value = response
    assert TikaClient(session=session).extract_text(b"x", "text/plain") == ""


def test_classify_url_building() -> None:
    assert ClassifyClient().url == "http://classify.oclc.org/classify2/Classify"
    assert ClassifyClient("localhost", 8080, "classify").url == "http://localhost:8080/classify"
    assert ClassifyClient("secure.example", 443, "/c").url == "https://secure.example/c"


def test_classify_lookup_sends_isbn_and_summary() -> None:
    session = MagicMock()
    session.get.return_value = _mock_resp("<classify/>")
    client = ClassifyClient(session=session)

    assert client.lookup("9780735682931") == "<classify/>"
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"isbn": "9780735682931", "summary": "true"}


def test_classify_failure_returns_none() -> None:
    session = MagicMock()
    session.get.side_effect = requests.Timeout("slow")
    assert ClassifyClient(session=session).lookup("9780735682931") is None


def test_tika_text_decoded_as_utf8_without_charset() -> None:
    session = MagicMock()
    response = _mock_resp("")
    response.content = "Knuth — Volume 1, ISBN 0-201-89683-4".encode("utf-8")
    response.text = response.content.decode("iso-8859-1")
    response.encoding = "ISO-8859-1"
    session.put.return_value = response

    text = TikaClient(session=session).extract_text(b"%PDF", "application/pdf")

    assert text == "Knuth — Volume 1, ISBN 0-201-89683-4"


def test_tika_extract_metadata_requests_json() -> None:
    session = MagicMock()
    response = _mock_resp("")
    response.json.return_value = {"dc:title": "The art of computer programming"}
    session.put.return_value = response
    client = TikaClient("tika.local", 9998, session=session)

    assert client.extract_metadata(b"%PDF", "application/pdf") == {"dc:title": "The art of computer programming"}

    args, kwargs = session.put.call_args
    assert args[0] == "http://tika.local:9998/meta"
    assert kwargs["headers"]["Accept"] == "application/json"


def test_tika_extract_metadata_failures_return_empty() -> None:
    session = MagicMock()
    session.put.side_effect = requests.ConnectionError("refused")
    assert TikaClient(session=session).extract_metadata(b"x", "text/plain") == {}

    session = MagicMock()
    session.put.return_value.json.side_effect = ValueError("not json")
    assert TikaClient(session=session).extract_metadata(b"x", "text/plain") == {}

    session = MagicMock()
    session.put.return_value.json.return_value = ["not", "an", "object"]
    assert TikaClient(session=session).extract_metadata(b"x", "text/plain") == {}


def test_classify_lookup_title_sends_title_and_summary() -> None:
    session = MagicMock()
    session.get.return_value = _mock_resp("<classify/>")
    client = ClassifyClient(session=session)

    assert client.lookup_title("The C programming language") == "<classify/>"
    _, kwargs = session.get.call_args
    assert kwargs["params"] == {"title": "The C programming language", "summary": "true"}


def test_classify_title_failure_returns_none() -> None:
    session = MagicMock()
    session.get.side_effect = requests.ConnectionError("refused")
    assert ClassifyClient(session=session).lookup_title("TAOCP") is None
