"""
Command-line interface for batch jobs.

Usage:
    batchflow run --config config/import_people.yaml [options]
    batchflow init-db [--truncate] [options]

Exit status of ``run``: 0 when the run COMPLETED, 1 when it FAILED,
2 when the configuration is rejected before a run starts.
"""

import argparse
import sys
from typing import Any

from dotenv import load_dotenv
from psycopg import OperationalError

from batchflow.batch import JobLauncher, build_import_job
from batchflow.core.config import DatabaseConfig, JobConfigLoader
from batchflow.core.errors import ConfigurationError
from batchflow.core.models import JobExecution
from batchflow.observability.logger import get_logger, log_operation, setup_logger
from batchflow.observability.metrics import start_metrics_server
from batchflow.warehouse import DatabaseConnectionPool, ensure_people_table, truncate_people_table

logger = get_logger(__name__)

EXIT_COMPLETED = 0
EXIT_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2


def _database_overrides(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "database.host": args.db_host,
        "database.port": args.db_port,
        "database.database": args.db_name,
        "database.user": args.db_user,
        "database.password": args.db_password,
    }


def _log_summary(execution: JobExecution, dry_run: bool) -> None:
    summary = execution.summary
    logger.info("=" * 60)
    logger.info(f"JOB {execution.job_name} RUN {execution.run_id}: {execution.status.value}")
    logger.info("=" * 60)
    logger.info(f"Records read: {summary.read}")
    logger.info(f"Records transformed: {summary.transformed}")
    logger.info(f"Records filtered: {summary.filtered}")
    logger.info(f"Records written: {summary.written}")
    logger.info(f"Records skipped: {summary.skipped}")
    logger.info(f"Records failed: {summary.failed}")
    for step_execution in execution.step_executions:
        for item in step_execution.skipped_items:
            logger.info(f"Skipped ({item.phase}, line {item.line_number}): {item.item!r}: {item.error}")
    if execution.failure:
        logger.info(f"Failure: {execution.failure}")
    logger.info("=" * 60)
    if dry_run:
        logger.info("DRY RUN: No data was written to the database")


def run_command(args: argparse.Namespace) -> int:
    """
    Execute one run of the configured job and block until it ends.

    Returns:
        Process exit status
    """
    try:
        config = JobConfigLoader(args.config).load().with_overrides({
            "reader.path": args.input,
            "chunk_size": args.chunk_size,
            "policy.skip_policy": args.skip_policy,
            "policy.skip_limit": args.skip_limit,
            "policy.retry_limit": args.retry_limit,
            **_database_overrides(args),
        })
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR

    logger.info(f"Starting job {config.job_name} for input: {config.reader.path}")

    if args.metrics_port:
        start_metrics_server(args.metrics_port)

    pool = None
    try:
        if not args.dry_run:
            logger.info("Initializing database connection...")
            pool = DatabaseConnectionPool.from_config(config.database)
            pool.open()

        job = build_import_job(config, pool=pool, dry_run=args.dry_run)
        execution = JobLauncher().run(job)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR
    except OperationalError as e:
        logger.error(f"Database unavailable: {e}", exc_info=True)
        return EXIT_FAILED
    finally:
        if pool is not None:
            pool.close()

    _log_summary(execution, args.dry_run)
    return EXIT_COMPLETED if execution.exit_code == 0 else EXIT_FAILED


def init_db_command(args: argparse.Namespace) -> int:
    """Create (and optionally empty) the people table."""
    try:
        database = DatabaseConfig()
        if args.config:
            database = JobConfigLoader(args.config).load().database
        overrides = {
            key.split(".", 1)[1]: value
            for key, value in _database_overrides(args).items()
            if value is not None
        }
        pool = DatabaseConnectionPool.from_config(database.model_copy(update=overrides))
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR

    try:
        with pool, log_operation("init-db", logger=logger, truncate=args.truncate):
            ensure_people_table(pool)
            if args.truncate:
                truncate_people_table(pool)
    except OperationalError as e:
        logger.error(f"Database unavailable: {e}", exc_info=True)
        return EXIT_FAILED
    return EXIT_COMPLETED


def _add_database_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db-host", help="Database host (default: config file, then DB_HOST)")
    parser.add_argument("--db-port", type=int, help="Database port (default: config file, then DB_PORT)")
    parser.add_argument("--db-name", help="Database name (default: config file, then DB_NAME)")
    parser.add_argument("--db-user", help="Database user (default: config file, then DB_USER)")
    parser.add_argument("--db-password", help="Database password (default: config file, then DB_PASSWORD)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batchflow",
        description="Chunked flat-file to PostgreSQL import jobs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import the sample people file
  batchflow run --config config/import_people.yaml

  # Skip up to 5 malformed lines, commit 100 records per transaction
  batchflow run --config config/import_people.yaml --skip-policy skip \\
      --skip-limit 5 --chunk-size 100

  # Dry run (read and transform, don't write)
  batchflow run --config config/import_people.yaml --dry-run

  # Create the target table
  batchflow init-db --db-host localhost --db-password secret
        """
    )
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR (default: LOG_LEVEL or INFO)")
    parser.add_argument("--log-format", choices=["json", "text"], help="Log format (default: LOG_FORMAT or json)")
    parser.add_argument("--env-file", help="Load environment variables from a dotenv file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run an import job")
    run_parser.add_argument("--config", required=True, help="Path to the job YAML file")
    run_parser.add_argument("--input", help="Override the input file path")
    run_parser.add_argument("--chunk-size", type=int, help="Records committed per transaction")
    run_parser.add_argument(
        "--skip-policy",
        choices=["skip", "abort"],
        help="What to do with records that fail to parse or transform",
    )
    run_parser.add_argument("--skip-limit", type=int, help="Maximum records to skip before failing")
    run_parser.add_argument("--retry-limit", type=int, help="Write attempts per chunk after a rollback")
    run_parser.add_argument("--dry-run", action="store_true", help="Read and transform without writing")
    run_parser.add_argument("--metrics-port", type=int, help="Expose Prometheus metrics on this port")
    _add_database_arguments(run_parser)

    init_parser = subparsers.add_parser("init-db", help="Create the people table")
    init_parser.add_argument("--config", help="Job YAML file to take database settings from")
    init_parser.add_argument("--truncate", action="store_true", help="Empty the table after creating it")
    _add_database_arguments(init_parser)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.env_file:
        load_dotenv(args.env_file)
    if args.log_level or args.log_format:
        setup_logger(level=args.log_level, format_type=args.log_format)

    if not args.command:
        parser.print_help()
        return EXIT_FAILED

    if args.command == "run":
        return run_command(args)
    return init_db_command(args)


if __name__ == "__main__":
    sys.exit(main())
