from labslot.core.exceptions import (
    NO_OP,
    AppError,
    NoOpChange,
    PersistenceError,
    ResourceNotFoundError,
    StateTransitionError,
    ValidationError,
)


def test_error_status_codes():
    assert ValidationError("bad").status_code == 422
    assert StateTransitionError("nope").status_code == 409
    assert StateTransitionError("nope", status_code=403).status_code == 403
    assert PersistenceError("down").status_code == 503
    missing = ResourceNotFoundError("Event", "e1")
    assert missing.status_code == 404
    assert missing.message == "Event with id e1 not found"
    assert isinstance(missing, AppError)


def test_details_default_to_empty_dict():
    assert ValidationError("bad").details == {}
    assert ValidationError("bad", details={"slot": "s1"}).details == {"slot": "s1"}


def test_no_op_marker():
    assert NoOpChange() is NO_OP
    assert not NO_OP
    assert repr(NO_OP) == "NO_OP"
