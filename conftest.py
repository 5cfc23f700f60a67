"""
Shared pytest fixtures: fake HTTP responses and in-memory DynamoDB tables.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from flowdash.core.config import AppConfig

NOW = datetime(2024, 3, 15, 10, 0, 0, tzinfo=timezone.utc)


def make_response(payload=None, status=200, bad_json=False):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    if bad_json:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = payload if payload is not None else {}
    return response


class FakeTable:
    """Minimal stand-in for a boto3 DynamoDB Table: put/get/delete/scan/query."""

    def __init__(self, hash_key, range_key=None):
        self.hash_key = hash_key
        self.range_key = range_key
        self.items = {}
        self.scan_kwargs = []
        self.query_kwargs = []

    def _key(self, item):
        return (item[self.hash_key], item.get(self.range_key) if self.range_key else None)

    def put_item(self, Item):
        self.items[self._key(Item)] = dict(Item)

    def get_item(self, Key):
        item = self.items.get(self._key(Key))
        return {'Item': dict(item)} if item else {}

    def delete_item(self, Key):
        self.items.pop(self._key(Key), None)

    def scan(self, **kwargs):
        self.scan_kwargs.append(kwargs)
        items = [dict(i) for i in self.items.values()]
        condition = kwargs.get('FilterExpression')
        if condition is not None:
            items = [i for i in items if _matches(condition, i)]
        if kwargs.get('Select') == 'COUNT':
            return {'Count': len(items)}
        return {'Items': items}

    def query(self, **kwargs):
        self.query_kwargs.append(kwargs)
        hash_value = kwargs['KeyConditionExpression'].get_expression()['values'][1]
        items = [dict(i) for i in self.items.values() if i[self.hash_key] == hash_value]
        items.sort(key=lambda i: i[self.range_key], reverse=not kwargs.get('ScanIndexForward', True))
        if 'Limit' in kwargs:
            items = items[:kwargs['Limit']]
        return {'Items': items}

    def batch_writer(self, overwrite_by_pkeys=None):
        table = self

        class _Batch:
            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

            def put_item(self, Item):
                table.put_item(Item)

        return _Batch()


def _matches(condition, item):
    """Evaluate the boto3 condition types the repositories build (eq, is_in, And)."""
    expression = condition.get_expression()
    operator = expression['operator']
    values = expression['values']
    if operator == 'AND':
        return _matches(values[0], item) and _matches(values[1], item)
    name = values[0].name
    if operator == '=':
        return item.get(name) == values[1]
    if operator == 'IN':
        return item.get(name) in values[1]
    raise AssertionError(f"Unsupported operator in fake table: {operator}")


@pytest.fixture
def config():
    return AppConfig(table_prefix="test")


@pytest.fixture
def fake_dynamodb():
    """A MagicMock resource whose Table() returns one FakeTable per table name."""
    tables = {}
    resource = MagicMock()

    def table_for(name):
        return tables[name]

    resource.Table.side_effect = table_for
    resource.tables = tables
    return resource


@pytest.fixture
def make_table(fake_dynamodb, config):
    def factory(table_cls):
        name = config.table_name(table_cls.TABLE)
        fake_dynamodb.tables[name] = FakeTable(table_cls.HASH_KEY, table_cls.RANGE_KEY)
        return table_cls(fake_dynamodb, config, ensure_table=False)
    return factory
