"""Tests for result values and actor role handling."""

import pytest

from estate_intake.core.auth import parse_role
from estate_intake.core.exceptions import ExtractionParseError
from estate_intake.core.result import Err, Ok
from estate_intake.schemas.auth import ActorRole, RequestActor


def test_ok_unwraps_value():
    assert Ok(5).unwrap() == 5
    assert Ok(5).ok is True


def test_err_unwrap_raises_its_error():
    error = ExtractionParseError("bad json")
    result = Err(error)

    assert result.ok is False
    with pytest.raises(ExtractionParseError) as exc_info:
        result.unwrap()
    assert exc_info.value is error
    assert exc_info.value.status_code == 422


@pytest.mark.parametrize("value, expected", [
    ("admin", ActorRole.ADMIN),
    (" Agent ", ActorRole.AGENT),
    ("viewer", ActorRole.VIEWER),
    ("superuser", ActorRole.VIEWER),
    (None, ActorRole.VIEWER),
])
def test_parse_role(value, expected):
    assert parse_role(value) == expected


def test_role_ranking():
    admin = RequestActor(user_id="u1", role=ActorRole.ADMIN)
    viewer = RequestActor(user_id="u2", role=ActorRole.VIEWER)

    assert admin.has_role(ActorRole.AGENT)
    assert not viewer.has_role(ActorRole.AGENT)
    assert viewer.has_role(ActorRole.VIEWER)
    assert not RequestActor().is_authenticated
