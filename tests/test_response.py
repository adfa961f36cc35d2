import pytest

from linkedin_profile_pkg.models import ProfileHeader
from response import build_error, build_response, validate_linkedin_url


@pytest.mark.parametrize(
    "value",
    [
        "https://www.linkedin.com/in/jane-doe",
        "https://www.linkedin.com/in/jane-doe/",
        "http://linkedin.com/in/jane-doe",
        "www.linkedin.com/in/jane-doe/",
        "linkedin.com/in/jane-doe",
        "  jane-doe  ",
    ],
)
def test_accepted_forms_normalize_to_canonical_url(value):
    assert validate_linkedin_url(value) == "https://www.linkedin.com/in/jane-doe"


@pytest.mark.parametrize(
    "value",
    [
        None,
        "",
        "https://www.linkedin.com/company/acme",
        "https://example.com/in/jane",
        "https://www.linkedin.com/in/jane/details/skills",
        "jane doe",
    ],
)
def test_rejected_values_return_none(value):
    assert validate_linkedin_url(value) is None


def test_build_response_dumps_models():
    body = build_response(ProfileHeader(name="Jane"))
    assert body["success"] is True
    assert body["data"]["name"] == "Jane"


def test_build_error_shape():
    assert build_error("nope", "invalid_url") == {"success": False, "error": "nope", "code": "invalid_url"}
