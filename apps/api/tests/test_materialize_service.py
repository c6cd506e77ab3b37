"""Tests for response materialization and Airtable payload building."""

from app.schemas.forms import FormSchema
from app.schemas.submissions import FieldResponse, FileDescriptor
from app.services.materialize_service import (
    StoredUpload,
    build_airtable_fields,
    completion_percentage,
    materialize,
    split_multi_select,
)


def _upload(name: str = "cv.pdf", field_key: str = "resume") -> StoredUpload:
    return StoredUpload(
        field_key=field_key,
        original_name=name,
        stored_name=f"form/{name}",
        size=120,
        mime_type="application/pdf",
        url=f"https://files.test/form/{name}",
    )


def test_multi_select_string_is_split_and_trimmed(schema):
    result = materialize(schema, {"colors": "Red, Blue"})

    assert result.answer_map()["colors"] == ["Red", "Blue"]
    assert result.airtable_fields["Favorite Colors"] == ["Red", "Blue"]


def test_split_multi_select_drops_empty_tokens():
    assert split_multi_select(" Red ,, Blue , ") == ["Red", "Blue"]


def test_payload_is_keyed_by_airtable_column(schema):
    result = materialize(schema, {"name": "Ada", "has_company": "Yes", "company": "Acme"})

    assert result.airtable_fields == {
        "Full Name": "Ada",
        "Has Company": "Yes",
        "Company Name": "Acme",
    }
    labels = {r.field_key: r.field_label for r in result.responses}
    assert labels["company"] == "Company"


def test_empty_and_unknown_answers_are_skipped(schema):
    result = materialize(schema, {"name": "", "email": None, "nickname": "Ace"})

    assert result.responses == []
    assert result.airtable_fields == {}


def test_uploads_create_attachment_response(schema):
    result = materialize(schema, {"name": "Ada"}, [_upload("a.pdf"), _upload("b.pdf")])

    resume = next(r for r in result.responses if r.field_key == "resume")
    assert [f.original_name for f in resume.files] == ["a.pdf", "b.pdf"]
    assert result.airtable_fields["Resume"] == [
        {"url": "https://files.test/form/a.pdf", "filename": "a.pdf"},
        {"url": "https://files.test/form/b.pdf", "filename": "b.pdf"},
    ]


def test_uploads_append_to_existing_response(schema):
    result = materialize(schema, {"resume": "see attached"}, [_upload()])

    resume = [r for r in result.responses if r.field_key == "resume"]
    assert len(resume) == 1
    assert resume[0].value == "see attached"
    assert len(resume[0].files) == 1


def test_uploads_for_non_attachment_fields_are_ignored(schema):
    result = materialize(schema, {}, [_upload(field_key="name")])

    assert result.responses == []
    assert result.airtable_fields == {}


def test_rebuilt_payload_uses_current_column_name(schema):
    responses = [
        FieldResponse(field_key="company", field_label="Company", field_type="short_text", value="Acme"),
    ]
    renamed = FormSchema.model_validate(
        {
            "fields": [
                {"key": "company", "type": "short_text", "airtable_field_name": "Employer", "label": "Company"},
            ]
        }
    )

    assert build_airtable_fields(renamed, responses) == {"Employer": "Acme"}


def test_rebuilt_payload_falls_back_to_label_for_removed_field():
    responses = [
        FieldResponse(field_key="gone", field_label="Old Question", field_type="short_text", value="x"),
    ]

    assert build_airtable_fields(None, responses) == {"Old Question": "x"}


def test_rebuilt_payload_maps_attachments(schema):
    responses = [
        FieldResponse(
            field_key="resume",
            field_label="Resume",
            field_type="attachment",
            files=[
                FileDescriptor(
                    original_name="cv.pdf",
                    stored_name="f/1.pdf",
                    size=10,
                    mime_type="application/pdf",
                    url="https://files.test/f/1.pdf",
                )
            ],
        )
    ]

    assert build_airtable_fields(schema, responses) == {
        "Resume": [{"url": "https://files.test/f/1.pdf", "filename": "cv.pdf"}]
    }


def test_completion_percentage():
    answered = FieldResponse(field_key="a", field_label="A", field_type="short_text", value="x")
    blank = FieldResponse(field_key="b", field_label="B", field_type="short_text", value=[])

    assert completion_percentage([]) == 0
    assert completion_percentage([answered, blank]) == 50
