from metadata import isbns_from_document_metadata, normalize, title_from_document_metadata
from models import BibliographicRecord

SINGLE_WORK = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<classify xmlns="http://classify.oclc.org">'
    '<response code="0"/>'
    '<work author="Knuth, Donald E." editions="80" holdings="2000" hyr="2011" lyr="1968" '
    'title="The art of computer programming"/>'
    "</classify>"
)

MULTI_WORK = (
    '<classify xmlns="http://classify.oclc.org">'
    '<response code="4"/>'
    "<works>"
    '<work author="Kernighan, Brian W." hyr="1988" lyr="1978" title="The C programming language"/>'
    '<work author="Kernighan, Brian W." hyr="n/a" title="The C programming language : ANSI C"/>'
    '<work author="Kernighan, Brian W." hyr="1988" lyr="1978" title="The C programming language"/>'
    "</works>"
    "</classify>"
)


def test_single_work_response() -> None:
    records = normalize(SINGLE_WORK)
    assert records == {
        BibliographicRecord(
            author="Knuth, Donald E.",
            title="The art of computer programming",
            low_year=1968,
            high_year=2011,
        )
    }


def test_multiple_works_collapse_duplicates_and_default_years() -> None:
    records = normalize(MULTI_WORK)
    assert len(records) == 2
    ansi = next(r for r in records if "ANSI" in r.title)
    assert ansi.low_year == 0
    assert ansi.high_year == 0


def test_caller_fields_left_blank() -> None:
    (record,) = normalize(SINGLE_WORK)
    assert record.isbn == ""
    assert record.filepath == ""


def test_empty_works_container_means_no_match() -> None:
    body = '<classify xmlns="http://classify.oclc.org"><response code="102"/><works/></classify>'
    assert normalize(body) == set()


def test_response_without_works_means_no_match() -> None:
    assert normalize('<classify><response code="101"/></classify>') == set()


def test_unparsable_body_returns_empty_set() -> None:
    assert normalize("<classify><work title='x'") == set()
    assert normalize("Service Unavailable") == set()
    assert normalize("") == set()


def test_work_without_namespace() -> None:
    records = normalize('<classify><work author="A" title="B" lyr="2000" hyr="2001"/></classify>')
    assert records == {BibliographicRecord(author="A", title="B", low_year=2000, high_year=2001)}


def test_work_with_neither_author_nor_title_is_dropped() -> None:
    body = (
        '<classify xmlns="http://classify.oclc.org"><works>'
        '<work author="" title="  " lyr="1990" hyr="1991"/>'
        '<work lyr="2000"/>'
        "</works></classify>"
    )
    assert normalize(body) == set()


def test_work_with_only_a_title_is_kept() -> None:
    records = normalize('<classify><work title="Untitled notes"/></classify>')
    assert records == {BibliographicRecord(author="", title="Untitled notes")}


def test_isbns_from_document_metadata() -> None:
    document_metadata = {
        "dc:identifier": ["urn:isbn:0201896834", "doi:10.1000/182"],
        "isbn": "978-0-7356-8293-1",
        "dc:title": "ISBN 0131103628 in a title is not an identifier",
        "xmpTPg:NPages": 3,
    }
    assert isbns_from_document_metadata(document_metadata) == {"0201896834", "9780735682931"}


def test_isbns_from_document_metadata_rejects_invalid() -> None:
    assert isbns_from_document_metadata({"dc:identifier": "0201896835"}) == set()
    assert isbns_from_document_metadata({}) == set()


def test_title_from_document_metadata() -> None:
    assert title_from_document_metadata({"dc:title": ["  ", "The art of computer programming"]}) == (
        "The art of computer programming"
    )
    assert title_from_document_metadata({"pdf:docinfo:title": "TAOCP", "title": ""}) == "TAOCP"
    assert title_from_document_metadata({"Author": "Knuth"}) == ""
