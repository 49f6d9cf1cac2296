"""Compare declared table descriptors with a live database's columns.

Pure set logic; the live side comes from ``SchemaIntrospector``.

Usage:
    from sqlrecord.schema.comparator import validate_schema
    from sqlrecord.schema.introspector import SchemaIntrospector

    actual = await SchemaIntrospector(db).get_column_names()
    result = validate_schema(actual, [articles, comments])
    if not result.valid:
        print(result.format_report())
"""

from collections.abc import Iterable, Mapping

from sqlrecord.schema.models import ColumnDiff, SchemaValidationResult, TableDef


def expected_columns(tables: Iterable[TableDef]) -> dict[str, set[str]]:
    """Build the expected-columns mapping from table descriptors.

    Later descriptors for the same table name add to earlier ones, so a
    table created in one migration and widened in another is expected to
    have the union of both column sets.

    Example:
        >>> from sqlrecord.schema.models import Column
        >>> expected_columns([TableDef(name="t", columns=[Column(name="id")])])
        {'t': {'id'}}
    """
    result: dict[str, set[str]] = {}
    for table in tables:
        result.setdefault(table.name, set()).update(table.column_names)
    return result


def validate_schema(
    actual_columns: Mapping[str, set[str]],
    expected: Mapping[str, set[str]] | Iterable[TableDef],
) -> SchemaValidationResult:
    """Check that every declared table and column exists in the database.

    Args:
        actual_columns: Table name -> live column names.
        expected: Table name -> required column names, or the ``TableDef``
            descriptors to derive that mapping from.

    Returns:
        ``SchemaValidationResult``.  Tables present in the database but not
        declared are reported in ``extra_tables`` and do not make the
        result invalid.

    Example:
        >>> validate_schema({"users": {"id"}}, {"users": {"id", "name"}}).missing_columns[0].column
        'name'
    """
    if not isinstance(expected, Mapping):
        expected = expected_columns(expected)

    missing_tables = sorted(name for name in expected if name not in actual_columns)
    extra_tables = sorted(name for name in actual_columns if name not in expected)

    missing_columns = [
        ColumnDiff(
            table=table_name,
            column=column_name,
            message=f"Column '{column_name}' missing from table '{table_name}'",
        )
        for table_name in sorted(set(expected) & set(actual_columns))
        for column_name in sorted(expected[table_name] - actual_columns[table_name])
    ]

    return SchemaValidationResult(
        valid=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
        extra_tables=extra_tables,
    )
