"""
Integration tests for PostgreSQL readers and writers.

Require Docker: the database runs in a testcontainers PostgreSQL container.
"""

import pytest

from batchflow.batch import IterableReader, QueryCursorReader, RetryPolicy, SqlBatchWriter, Step
from batchflow.core.config import DEFAULT_INSERT_SQL
from batchflow.core.errors import ConfigurationError, ParseError, PersistError
from batchflow.core.models import Person, StepStatus
from batchflow.core.transformers import PassthroughTransformer

SELECT_PEOPLE = "SELECT first_name, last_name FROM people ORDER BY person_id"


def count_people(pool) -> int:
    return pool.execute_query("SELECT COUNT(*) AS n FROM people")[0]["n"]


def people(*names):
    return [Person(first_name=first, last_name=last) for first, last in names]


@pytest.mark.integration
def test_connection_pool_executes_queries(db_pool):
    """Test the pool opens and runs a query with dict rows"""
    assert db_pool.is_open
    assert db_pool.execute_query("SELECT 1 AS one") == [{"one": 1}]


@pytest.mark.integration
def test_transaction_rolls_back_on_error(clean_db):
    """Test an exception inside transaction() discards its statements"""
    with pytest.raises(RuntimeError):
        with clean_db.transaction() as conn:
            conn.execute("INSERT INTO people (first_name, last_name) VALUES ('A', 'B')")
            raise RuntimeError("abort")

    assert count_people(clean_db) == 0


@pytest.mark.integration
def test_sql_writer_commits_chunk(clean_db):
    """Test a chunk written inside one transaction is visible afterwards"""
    writer = SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL)
    writer.validate()

    with writer.transaction():
        writer.write(people(("JANE", "DOE"), ("JOHN", "SMITH")))

    rows = clean_db.execute_query(SELECT_PEOPLE)
    assert rows == [
        {"first_name": "JANE", "last_name": "DOE"},
        {"first_name": "JOHN", "last_name": "SMITH"},
    ]


@pytest.mark.integration
def test_sql_writer_rolls_back_whole_chunk(clean_db):
    """Test a value too long for its column rolls back the records before it"""
    writer = SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL)
    chunk = people(("JANE", "DOE"), ("A" * 30, "DOE"), ("JOHN", "DOE"))

    with pytest.raises(PersistError):
        with writer.transaction():
            writer.write(chunk)

    assert count_people(clean_db) == 0


@pytest.mark.integration
def test_step_keeps_committed_chunks_after_failure(clean_db):
    """Test chunks committed before a failing chunk stay in the table"""
    records = people(("JILL", "DOE"), ("JOE", "DOE"), ("X" * 30, "DOE"), ("JANE", "DOE"))
    step = Step(
        "step1",
        IterableReader(records),
        PassthroughTransformer(),
        SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL),
        chunk_size=2,
        retry_policy=RetryPolicy(1),
    )

    execution = step.execute()

    assert execution.status is StepStatus.FAILED
    assert execution.commit_count == 1
    assert execution.rollback_count == 2
    assert [row["first_name"] for row in clean_db.execute_query(SELECT_PEOPLE)] == ["JILL", "JOE"]


@pytest.mark.integration
def test_query_reader_streams_rows(clean_db):
    """Test rows come back as records in query order"""
    SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL).write(people(("JILL", "DOE"), ("JOE", "DOE")))

    reader = QueryCursorReader(clean_db, SELECT_PEOPLE, Person, fetch_size=1)
    with reader:
        records = [reader.read(), reader.read()]
        assert reader.read() is None
        assert reader.position == 2

    assert records == people(("JILL", "DOE"), ("JOE", "DOE"))


@pytest.mark.integration
def test_query_reader_reads_past_fetch_size(clean_db):
    """Test a query returning more rows than fetch_size is read to the end"""
    names = [(f"P{i}", "DOE") for i in range(7)]
    SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL).write(people(*names))

    with QueryCursorReader(clean_db, SELECT_PEOPLE, Person, fetch_size=3) as reader:
        records = list(iter(reader.read, None))

    assert records == people(*names)
    assert reader.position == 7


@pytest.mark.integration
def test_query_reader_reports_unmappable_rows(clean_db):
    """Test a row that does not fit the record type raises ParseError"""
    SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL).write(people(("JILL", "DOE")))

    reader = QueryCursorReader(clean_db, "SELECT first_name FROM people", Person)
    with reader:
        with pytest.raises(ParseError) as exc_info:
            reader.read()

    assert exc_info.value.line_number == 1


@pytest.mark.integration
def test_copy_between_tables(clean_db):
    """Test a step reading from PostgreSQL and writing back to it"""
    SqlBatchWriter(clean_db, DEFAULT_INSERT_SQL).write(people(("jill", "doe"), ("joe", "doe")))
    clean_db.execute_command("CREATE TABLE IF NOT EXISTS people_copy (first_name VARCHAR(20), last_name VARCHAR(20))")
    clean_db.execute_command("TRUNCATE TABLE people_copy")

    step = Step(
        "copy",
        QueryCursorReader(clean_db, SELECT_PEOPLE, Person),
        lambda p: p.model_copy(update={"first_name": p.first_name.title()}),
        SqlBatchWriter(
            clean_db,
            "INSERT INTO people_copy (first_name, last_name) VALUES (%(first_name)s, %(last_name)s)",
        ),
        chunk_size=1,
    )

    execution = step.execute()

    assert execution.status is StepStatus.COMPLETED
    rows = clean_db.execute_query("SELECT first_name FROM people_copy ORDER BY first_name")
    assert [row["first_name"] for row in rows] == ["Jill", "Joe"]


@pytest.mark.integration
def test_query_reader_requires_open_pool(db_pool):
    """Test validate() rejects a closed pool"""
    from batchflow.warehouse import DatabaseConnectionPool

    closed = DatabaseConnectionPool(
        host=db_pool.host, port=db_pool.port, database=db_pool.database,
        user=db_pool.user, password=db_pool.password,
    )
    reader = QueryCursorReader(closed, SELECT_PEOPLE, Person)

    with pytest.raises(ConfigurationError):
        reader.validate()
