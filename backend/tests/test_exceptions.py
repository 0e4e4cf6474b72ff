from schoolsched.core.exceptions import (
    AppError,
    BadRequestError,
    ConflictError,
    NotFoundError,
    ResourceNotFoundError,
)


def test_bad_request_error_structure():
    err = BadRequestError(message="Test error", details={"foo": "bar"})
    assert err.status_code == 400
    assert err.message == "Test error"
    assert err.details == {"foo": "bar"}
    assert isinstance(err, AppError)


def test_app_error_defaults():
    err = AppError("Generic error")
    assert err.status_code == 500
    assert err.details == {}


def test_resource_not_found_names_the_resource():
    err = ResourceNotFoundError("Schedule", "abc")
    assert isinstance(err, NotFoundError)
    assert err.status_code == 404
    assert err.message == "Schedule with ID abc not found"
    assert err.details == {"resource_type": "Schedule", "resource_id": "abc"}


def test_conflict_error_status():
    assert ConflictError("taken").status_code == 409
