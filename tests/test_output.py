import io
import json

from rich.console import Console

from pngx.config import OutputFormat
from pngx.models import Envelope, ResolvedDocument, Tag
from pngx.output import Renderer, detail_fields, to_json


def _renderer(fmt: OutputFormat) -> tuple[Renderer, io.StringIO, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    renderer = Renderer(fmt, out=Console(file=out, width=200), err=Console(file=err, width=200))
    return renderer, out, err


DOC = ResolvedDocument(id=1, title="Invoice", tags=[7], tag_names=["paid"], correspondent_name="ACME")


def test_envelope_json():
    r, out, err = _renderer(OutputFormat.JSON)
    r.envelope(Envelope.build([DOC], total_count=10, exhausted=False), ResolvedDocument)

    data = json.loads(out.getvalue())
    assert list(data) == ["results", "total_count", "showing", "has_more"]
    assert data["results"][0]["title"] == "Invoice"
    assert data["showing"] == 1
    assert data["has_more"] is True
    assert "Showing 1 of 10 results" in err.getvalue()


def test_envelope_table_without_hint_when_complete():
    r, out, err = _renderer(OutputFormat.TABLE)
    r.envelope(Envelope.build([DOC], total_count=1, exhausted=True), ResolvedDocument)

    text = out.getvalue()
    assert "Correspondent" in text
    assert "Invoice" in text
    assert "ACME" in text
    assert err.getvalue() == ""


def test_items_json_is_plain_array():
    r, out, _ = _renderer(OutputFormat.JSON)
    r.items([Tag(id=1, name="paid", slug="paid")], Tag)
    data = json.loads(out.getvalue())
    assert isinstance(data, list)
    assert data[0]["name"] == "paid"


def test_documents_detail_tables():
    r, out, _ = _renderer(OutputFormat.TABLE)
    r.documents([DOC, ResolvedDocument(id=2, title="Receipt")])
    text = out.getvalue()
    assert text.count("Field") == 2
    assert "Receipt" in text


def test_documents_json_single_is_object():
    r, out, _ = _renderer(OutputFormat.JSON)
    r.documents([DOC], single=True)
    assert json.loads(out.getvalue())["id"] == 1


def test_documents_json_one_survivor_of_many_is_array():
    r, out, _ = _renderer(OutputFormat.JSON)
    r.documents([DOC], single=False)
    data = json.loads(out.getvalue())
    assert isinstance(data, list)
    assert [d["id"] for d in data] == [1]


def test_text_is_written_unchanged():
    r, out, _ = _renderer(OutputFormat.TABLE)
    r.text("col1\tcol2\r\npage1\fpage2 [b]x[/b]")
    assert out.getvalue() == "col1\tcol2\r\npage1\fpage2 [b]x[/b]\n"


def test_detail_fields_optional_rows():
    names = [name for name, _ in detail_fields(DOC)]
    assert "ASN" not in names
    doc = ResolvedDocument(id=3, title="x", archive_serial_number=42, original_file_name="x.pdf")
    fields = dict(detail_fields(doc))
    assert fields["ASN"] == "42"
    assert fields["Original File"] == "x.pdf"
    assert fields["Correspondent"] == "N/A"


def test_to_json_list_of_models():
    assert json.loads(to_json([Tag(id=1, name="a")])) == [
        {"id": 1, "name": "a", "slug": "", "color": None, "is_inbox_tag": None, "document_count": None}
    ]
