from pytest import mark, param

from serverless_utils.common.errors import (
    NO_STACK_PROVIDED,
    ErrorDetails,
    ErrorKind,
    convert_error,
    error_context,
)


def raised(error: Exception) -> Exception:
    try:
        raise error
    except Exception as e:
        return e


def test__convert_error__raised_exception__stack_only_in_log_view():
    error = raised(ValueError("Invalid input"))

    converted = convert_error(error)

    assert converted.response == {"name": "ValueError", "message": "Invalid input"}
    assert converted.logger["name"] == "ValueError"
    assert converted.logger["message"] == "Invalid input"
    assert "Traceback" in converted.logger["stack"]
    assert "ValueError: Invalid input" in converted.logger["stack"]


def test__convert_error__exception_never_raised__no_stack_placeholder():
    converted = convert_error(KeyError("missing"))

    assert converted.logger["stack"] == NO_STACK_PROVIDED
    assert "stack" not in converted.response


@mark.parametrize(
    "value, expected",
    [
        param({"code": 500, "description": "Internal"}, {"code": 500, "description": "Internal"}, id="dict"),
        param("boom", "boom", id="string"),
        param(None, {}, id="none"),
        param({}, {}, id="empty"),
    ],
)
def test__convert_error__non_exception__passed_through(value, expected):
    converted = convert_error(value)

    assert converted.logger == expected
    assert converted.response == expected


@mark.parametrize(
    "value, kind",
    [
        param(RuntimeError("x"), ErrorKind.EXCEPTION, id="exception"),
        param(
            {"name": "X", "message": "y", "stack": "z"}, ErrorKind.ERROR_OBJECT, id="error mapping"
        ),
        param({"name": "X", "message": "y", "stack": ""}, ErrorKind.OBJECT, id="empty stack"),
        param({"name": "X", "message": "y"}, ErrorKind.OBJECT, id="no stack"),
    ],
)
def test__ErrorDetails__from_value__kind(value, kind):
    assert ErrorDetails.from_value(value).kind == kind


def test__error_context__wraps_log_view():
    assert error_context({"code": 1}) == {"error": {"code": 1}}


def test__convert_error__error_mapping__stack_only_in_log_view():
    error = {"name": "DbError", "message": "boom", "stack": "at db.py:1", "code": 503}

    converted = convert_error(error)

    assert converted.logger == error
    assert converted.response == {"name": "DbError", "message": "boom", "code": 503}


def test__convert_error__partial_mapping__stack_key_dropped_from_response():
    converted = convert_error({"message": "boom", "stack": "at db.py:1"})

    assert converted.logger == {"message": "boom", "stack": "at db.py:1"}
    assert converted.response == {"message": "boom"}
