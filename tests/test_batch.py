from pathlib import Path

import pytest

from pngx.batch import check_explicit_path, run_batch
from pngx.errors import ErrorKind, InvalidBatchArguments, NotFound, Unauthorized

STORE = {1: "one", 2: "two", 3: "three"}


def _get(document_id: int) -> str:
    if document_id not in STORE:
        raise NotFound(f"document {document_id}")
    return STORE[document_id]


def test_order_and_duplicates_preserved_with_isolated_failure():
    result = run_batch([3, 1, 3, 99], _get)

    assert [i.id for i in result.items] == [3, 1, 3, 99]
    assert [i.value for i in result.items[:3]] == ["three", "one", "three"]
    assert all(i.ok for i in result.items[:3])
    assert result.items[3].error is not None
    assert result.items[3].error.kind is ErrorKind.NOT_FOUND
    assert result.all_ok is False
    assert result.exit_code() == 1


def test_all_ok():
    result = run_batch([1, 2], _get)
    assert result.all_ok is True
    assert result.failed == []
    assert result.exit_code() == 0


def test_failure_does_not_stop_later_ids():
    seen = []

    def op(i):
        seen.append(i)
        if i == 1:
            raise Unauthorized()
        return i

    result = run_batch([1, 2, 3], op)
    assert seen == [1, 2, 3]
    assert [i.id for i in result.succeeded] == [2, 3]


def test_exit_code_is_most_severe():
    def op(i):
        raise {1: NotFound(), 2: Unauthorized()}[i]

    assert run_batch([1, 2], op).exit_code() == 3


def test_explicit_path_with_many_ids_makes_no_calls(tmp_path: Path):
    calls = 0

    def op(i):
        nonlocal calls
        calls += 1
        return i

    with pytest.raises(InvalidBatchArguments):
        run_batch([1, 2], op, explicit_path=tmp_path / "out.pdf")
    assert calls == 0


def test_explicit_path_with_single_id(tmp_path: Path):
    result = run_batch([2], _get, explicit_path=tmp_path / "out.pdf")
    assert result.items[0].value == "two"


def test_check_explicit_path():
    check_explicit_path([1, 2], None)
    check_explicit_path([1], Path("x.pdf"))
    with pytest.raises(InvalidBatchArguments) as exc:
        check_explicit_path([1, 2, 3], Path("x.pdf"))
    assert exc.value.exit_code == 1


def test_unexpected_exceptions_propagate():
    def op(i):
        raise KeyError(i)

    with pytest.raises(KeyError):
        run_batch([1], op)
