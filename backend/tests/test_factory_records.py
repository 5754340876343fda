from __future__ import annotations

from uuid import uuid4

from app.models import FactoryMessage
from app.services.factory_records import find_prior_inbound_message


class _QueryStub:
    def __init__(self, result=None) -> None:
        self.result = result
        self.criteria: list = []

    def filter(self, *criteria):
        self.criteria.extend(criteria)
        return self

    def order_by(self, *_args):
        return self

    def first(self):
        return self.result


class _SessionStub:
    def __init__(self, query: _QueryStub) -> None:
        self._query = query

    def query(self, _model):
        return self._query


def test_prior_inbound_lookup_only_counts_applied_messages() -> None:
    query = _QueryStub()

    find_prior_inbound_message(
        _SessionStub(query),
        supplier_id=uuid4(),
        external_message_id="wx-1",
        exclude_id=uuid4(),
    )

    rendered = {str(criterion) for criterion in query.criteria}
    assert str(FactoryMessage.status == "delivered") in rendered
    assert str(FactoryMessage.direction == "inbound") in rendered
