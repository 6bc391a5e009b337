import datetime
import decimal

import pytest


@pytest.fixture
def target_class():
    from ..renderer import ReprRenderer

    return ReprRenderer


def test_collection(target_class):
    from ..models import CollectionDocumentRepr, LinkageRepr, ResourceIdRepr, ResourceRepr

    target = target_class()

    result = target(
        CollectionDocumentRepr(
            data=[
                ResourceRepr(
                    type="authors",
                    id="1",
                    attributes=[("first_name", "Stephen")],
                    relationships=[
                        (
                            "books",
                            LinkageRepr(
                                data=[
                                    ResourceIdRepr(type="books", id="1"),
                                    ResourceIdRepr(type="books", id="2"),
                                ],
                            ),
                        ),
                        ("state", LinkageRepr(data=None)),
                    ],
                ),
            ],
            included=[
                ResourceRepr(type="books", id="1", attributes=[("title", "The Shining")]),
                ResourceRepr(type="books", id="2", attributes=[]),
            ],
        )
    )
    assert result == {
        "data": [
            {
                "type": "authors",
                "id": "1",
                "attributes": {"first_name": "Stephen"},
                "relationships": {
                    "books": {
                        "data": [
                            {"type": "books", "id": "1"},
                            {"type": "books", "id": "2"},
                        ],
                    },
                    "state": {"data": None},
                },
            },
        ],
        "included": [
            {"type": "books", "id": "1", "attributes": {"title": "The Shining"}},
            {"type": "books", "id": "2"},
        ],
    }


def test_meta(target_class):
    from ..models import CollectionDocumentRepr

    target = target_class()
    assert target(CollectionDocumentRepr(meta={"total": 0})) == {
        "meta": {"total": 0},
        "data": [],
        "included": [],
    }


def test_errors(target_class):
    from ..models import CollectionDocumentRepr, ErrorRepr, SourceRepr

    target = target_class()
    result = target(
        CollectionDocumentRepr(
            errors=[
                ErrorRepr(
                    status="400",
                    code="invalid_parameter",
                    detail="page number must be at least 1 (0 given)",
                    source=SourceRepr(parameter="page[number]"),
                ),
                ErrorRepr(status="500"),
            ]
        )
    )
    assert result == {
        "errors": [
            {
                "status": "400",
                "code": "invalid_parameter",
                "detail": "page number must be at least 1 (0 given)",
                "source": {"parameter": "page[number]"},
            },
            {"status": "500"},
        ],
    }


@pytest.mark.parametrize(
    "value, options, expected",
    [
        (decimal.Decimal("1.50"), {}, "1.50"),
        (decimal.Decimal("1.5"), {"render_decimal_as_str": False}, 1.5),
        (datetime.date(2017, 1, 1), {}, "2017-01-01"),
        (
            datetime.datetime(2017, 1, 1, 9, tzinfo=datetime.timezone(datetime.timedelta(hours=9))),
            {},
            "2017-01-01T00:00:00+00:00",
        ),
        (
            datetime.datetime(2017, 1, 1),
            {"assume_naive_timezone_as": datetime.timezone.utc},
            "2017-01-01T00:00:00+00:00",
        ),
        (b"\x00\x01", {}, "AAE="),
        ([1, {"a": None}], {}, [1, {"a": None}]),
    ],
)
def test_attribute_values(target_class, value, options, expected):
    from ..models import CollectionDocumentRepr, ResourceRepr

    target = target_class(**options)
    result = target(
        CollectionDocumentRepr(
            data=[ResourceRepr(type="foos", id="1", attributes=[("a", value)])],
        )
    )
    assert result["data"][0]["attributes"]["a"] == expected


def test_naive_datetime(target_class):
    from ..models import CollectionDocumentRepr, ResourceRepr

    target = target_class()
    with pytest.raises(ValueError) as e:
        target(
            CollectionDocumentRepr(
                data=[
                    ResourceRepr(
                        type="foos",
                        id="1",
                        attributes=[("a", datetime.datetime(2017, 1, 1))],
                    )
                ],
            )
        )
    assert str(e.value).startswith("/data/0/attributes/a:")


def test_unsupported_type(target_class):
    from ..models import CollectionDocumentRepr, ResourceRepr

    target = target_class()
    with pytest.raises(TypeError):
        target(
            CollectionDocumentRepr(
                data=[ResourceRepr(type="foos", id="1", attributes=[("a", object())])],
            )
        )
