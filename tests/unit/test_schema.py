from __future__ import annotations

import pytest

from rowdesk.domain.models import ColumnDescriptor, TableSummary
from rowdesk.errors import IntrospectionError
from rowdesk.schema import SchemaIntrospector, is_user_table


def test_is_user_table_hides_reserved_and_bookkeeping_tables():
    system = ["schema_migrations"]
    assert is_user_table("widgets", "_", system)
    assert not is_user_table("_prisma_migrations", "_", system)
    assert not is_user_table("schema_migrations", "_", system)
    assert is_user_table("_private", "", system)


@pytest.mark.asyncio
async def test_list_tables_filters_internal_tables(backend_factory, settings):
    backend = backend_factory(
        columns={
            "widgets": [],
            "_internal": [],
            "schema_migrations": [],
            "companies": [],
        }
    )

    tables = await SchemaIntrospector(backend, settings).list_tables()

    assert tables == ["companies", "widgets"]


@pytest.mark.asyncio
async def test_describe_unknown_table_is_empty(backend, settings):
    assert await SchemaIntrospector(backend, settings).describe_columns("missing") == []


@pytest.mark.asyncio
async def test_backend_failures_become_introspection_errors(backend, settings):
    backend.failures["list_tables"] = RuntimeError("timeout")

    with pytest.raises(IntrospectionError):
        await SchemaIntrospector(backend, settings).list_tables()


@pytest.mark.asyncio
async def test_overview_describes_every_user_table(backend_factory, settings):
    columns = [ColumnDescriptor(name=name, data_type="text") for name in ("a", "b", "c", "d", "e")]
    backend = backend_factory(columns={"wide": columns, "narrow": columns[:1], "_hidden": columns})

    summaries = await SchemaIntrospector(backend, settings).overview()

    assert [summary.name for summary in summaries] == ["narrow", "wide"]
    wide = summaries[1]
    assert isinstance(wide, TableSummary)
    assert [column.name for column in wide.preview()] == ["a", "b", "c"]
    assert wide.hidden_count() == 2
    assert summaries[0].hidden_count() == 0
