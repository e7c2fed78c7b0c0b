from datetime import datetime

import pytest

from fakes import FakeTable, RecordingSleep

from expenso.db.dynamo import TransactionStore

# Tuesday; the Monday before is 2026-10-12, the Sunday before is 2026-10-11
TUESDAY = datetime(2026, 10, 13, 18, 30)


@pytest.fixture
def table():
    return FakeTable()


@pytest.fixture
def store(table):
    return TransactionStore(table=table)


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def clock():
    return lambda: TUESDAY
