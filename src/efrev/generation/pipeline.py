"""Main pipeline for schema -> C# code generation."""

import time
from pathlib import Path
from typing import List, Optional
from efrev.analysis.analyzer import RelationshipAnalyzer
from efrev.config.settings import Settings
from efrev.emission.orchestrator import EmissionOrchestrator
from efrev.emission.plan import GenerationPlan
from efrev.emission.writer import CONFIGURATIONS_DIR, ENTITIES_DIR, CodeWriter
from efrev.readers.base import BaseSchemaReader
from efrev.readers.factory import create_schema_reader
from efrev.schema.models import SchemaSnapshot, Table
from efrev.schema.validators import validate_schema
from efrev.utils.error_logging import log_error
from efrev.config.logging import get_logger

logger = get_logger(__name__)


def build_orchestrator(settings: Settings, tables: List[Table]) -> EmissionOrchestrator:
    """Orchestrator configured from settings."""
    return EmissionOrchestrator(
        tables,
        analyzer=RelationshipAnalyzer(payload_tolerance=settings.payload_tolerance),
        pluralize_collections=settings.is_pluralize,
        use_pascal_case=settings.use_pascal_case,
        singularize_entity_names=settings.singularize_entity_names,
        max_workers=settings.max_workers,
    )


def plan_generation(settings: Settings, tables: List[Table]) -> GenerationPlan:
    """Validate the tables and build the generation plan, without writing files."""
    issues = validate_schema(SchemaSnapshot(tables=tables))
    for issue in issues:
        logger.warning(f"Schema issue [{issue.code}] at {issue.location}: {issue.message}")
    if issues:
        logger.info(f"Schema validation reported {len(issues)} issue(s)")

    return build_orchestrator(settings, tables).plan_all()


def run_code_generation(
    settings: Settings,
    reader: Optional[BaseSchemaReader] = None,
) -> GenerationPlan:
    """
    Read the schema, plan entities and write the C# files.

    Args:
        settings: Validated settings
        reader: Schema reader; built from settings when omitted

    Returns:
        The generation plan that was written

    Raises:
        Whatever the reader, planner or writer raised, after logging it
    """
    start = time.time()
    out_dir = Path(settings.output_directory)
    logger.info(
        f"Starting code generation (provider={settings.provider}, "
        f"namespace={settings.namespace}, output_dir={out_dir})"
    )

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        (out_dir / ENTITIES_DIR).mkdir(exist_ok=True)
        (out_dir / CONFIGURATIONS_DIR).mkdir(exist_ok=True)

        reader = reader or create_schema_reader(settings)
        tables = reader.read_tables()
        logger.info(f"Read {len(tables)} table(s)")

        plan = plan_generation(settings, tables)
        for name, message in plan.failures.items():
            logger.warning(f"Skipped table '{name}': {message}")

        written = CodeWriter(settings).write(plan, out_dir)
    except Exception as e:
        log_error(
            error=e,
            context={
                "provider": settings.provider,
                "elapsed_time": f"{time.time() - start:.3f}s",
            },
            operation="Code generation failed",
            file_path=str(out_dir),
        )
        raise

    logger.info(
        f"Code generation completed: {len(written)} file(s) written to {out_dir} "
        f"in {time.time() - start:.3f}s"
    )
    return plan
