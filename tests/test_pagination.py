import pytest

from roadside.models import Policy
from roadside.shared.pagination import paginate, paginate_query


def test_paginate_first_page():
    result = paginate(list(range(25)), page=1, per_page=10)

    assert result["data"] == list(range(10))
    meta = result["meta"]
    assert meta["totalItems"] == 25
    assert meta["totalPages"] == 3
    assert meta["hasNext"] is True
    assert meta["hasPrev"] is False
    assert meta["nextPage"] == 2
    assert meta["prevPage"] is None
    assert meta["from"] == 1
    assert meta["to"] == 10


def test_paginate_clamps_page_past_the_end():
    result = paginate(list(range(25)), page=9, per_page=10)

    assert result["meta"]["currentPage"] == 3
    assert result["data"] == list(range(20, 25))
    assert result["meta"]["to"] == 25


def test_paginate_invalid_numbers_fall_back_to_defaults():
    result = paginate(list(range(5)), page="abc", per_page=-3)

    assert result["meta"]["currentPage"] == 1
    assert result["meta"]["perPage"] == 10


def test_paginate_empty_list_reports_page_one():
    meta = paginate([], page=4)["meta"]

    assert meta["currentPage"] == 1
    assert meta["totalPages"] == 0
    assert meta["from"] == 0
    assert meta["to"] == 0
    assert meta["hasNext"] is False


def test_paginate_rejects_non_list():
    with pytest.raises(TypeError):
        paginate({"a": 1})


def test_paginate_query_envelope(db, organization):
    for i in range(7):
        db.add(Policy(organization_id=organization.id, policy_number=f"P-{i}"))
    db.commit()

    query = db.query(Policy).order_by(Policy.id)
    result = paginate_query(query, page=2, limit=3, serializer=lambda p: p.policy_number)

    assert result["docs"] == ["P-3", "P-4", "P-5"]
    assert result["totalDocs"] == 7
    assert result["totalPages"] == 3
    assert result["pagingCounter"] == 4
    assert result["hasPrevPage"] is True
    assert result["hasNextPage"] is True
    assert result["prevPage"] == 1
    assert result["nextPage"] == 3
