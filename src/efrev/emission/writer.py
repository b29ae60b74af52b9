"""Render entity plans to Entity Framework 6 C# source files."""

from pathlib import Path
from typing import List, Optional
from xml.sax.saxutils import escape
from efrev.analysis.relationships import RelationKind
from efrev.config.settings import Settings
from efrev.emission.plan import (
    EntityPlan,
    GenerationPlan,
    MappingDirective,
    NavigationProperty,
    ScalarProperty,
)
from efrev.emission.type_mapping import REFERENCE_TYPES, is_string_type
from efrev.templates.loader import load_template, render_template
from efrev.utils.error_logging import log_error
from efrev.utils.naming import pluralize
from efrev.config.logging import get_logger

logger = get_logger(__name__)

POCO = "POCO"
CONFIGURATION = "Configuration"
DB_CONTEXT = "DbContext"

ENTITIES_DIR = "Entities"
CONFIGURATIONS_DIR = "Configurations"

ENTITY_USINGS = [
    "using System;",
    "using System.Collections.Generic;",
]
ANNOTATION_USINGS = [
    "using System.ComponentModel.DataAnnotations;",
    "using System.ComponentModel.DataAnnotations.Schema;",
]
CONFIGURATION_USINGS = [
    "using System.ComponentModel.DataAnnotations.Schema;",
    "using System.Data.Entity.ModelConfiguration;",
]
CONTEXT_USINGS = [
    "using System.Data.Entity;",
]

# Indentation inside namespace / class / method bodies
MEMBER = " " * 8
STATEMENT = " " * 12
CONTINUATION = " " * 16


def _doc_comment(text: Optional[str], indent: str) -> str:
    if not text:
        return ""
    lines = [f"{indent}/// <summary>"]
    lines.extend(f"{indent}/// {escape(line.strip())}" for line in text.strip().splitlines())
    lines.append(f"{indent}/// </summary>")
    return "\n".join(lines) + "\n"


def _quoted(values: List[str]) -> str:
    return ", ".join(f'"{v}"' for v in values)


def _key_lambda(properties: List[str]) -> str:
    if len(properties) == 1:
        return f"t => t.{properties[0]}"
    return "t => new { " + ", ".join(f"t.{p}" for p in properties) + " }"


class CodeWriter:
    """Writes entity classes, fluent configurations and the DbContext."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.elements = {e.lower() for e in settings.elements_to_generate}

    def wants(self, element: str) -> bool:
        return element.lower() in self.elements

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    def _scalar_attributes(self, scalar: ScalarProperty, composite_key_order: Optional[int]) -> List[str]:
        attributes = []
        if scalar.primary_key:
            attributes.append("[Key]")
        column_args = []
        if scalar.name != scalar.column_name:
            column_args.append(f'"{scalar.column_name}"')
        if composite_key_order is not None:
            column_args.append(f"Order = {composite_key_order}")
        if column_args:
            attributes.append(f"[Column({', '.join(column_args)})]")
        if scalar.identity:
            attributes.append("[DatabaseGenerated(DatabaseGeneratedOption.Identity)]")
        elif scalar.computed:
            attributes.append("[DatabaseGenerated(DatabaseGeneratedOption.Computed)]")
        elif scalar.primary_key and not is_string_type(scalar.clr_type):
            attributes.append("[DatabaseGenerated(DatabaseGeneratedOption.None)]")
        if not scalar.nullable and scalar.clr_type in REFERENCE_TYPES:
            attributes.append("[Required]")
        if is_string_type(scalar.clr_type) and scalar.max_length and scalar.max_length > 0:
            attributes.append(f"[StringLength({scalar.max_length})]")
        return attributes

    def _scalar_member(self, scalar: ScalarProperty, composite_key_order: Optional[int]) -> str:
        lines = []
        if self.settings.include_comments and scalar.comment:
            lines.append(_doc_comment(scalar.comment, MEMBER).rstrip("\n"))
        if self.settings.use_data_annotations:
            lines.extend(f"{MEMBER}{a}" for a in self._scalar_attributes(scalar, composite_key_order))
        lines.append(f"{MEMBER}public {scalar.clr_type} {scalar.name} {{ get; set; }}")
        return "\n".join(lines)

    @staticmethod
    def _navigation_member(navigation: NavigationProperty) -> str:
        if navigation.collection:
            clr_type = f"ICollection<{navigation.target_entity}>"
        else:
            clr_type = navigation.target_entity
        return f"{MEMBER}public virtual {clr_type} {navigation.name} {{ get; set; }}"

    @staticmethod
    def _constructor(entity: EntityPlan) -> Optional[str]:
        collections = entity.collection_navigations
        if not collections:
            return None
        lines = [f"{MEMBER}public {entity.entity_name}()", f"{MEMBER}{{"]
        lines.extend(
            f"{STATEMENT}{n.name} = new HashSet<{n.target_entity}>();" for n in collections
        )
        lines.append(f"{MEMBER}}}")
        return "\n".join(lines)

    def render_entity_class(self, entity: EntityPlan) -> str:
        """C# class block for one entity, without usings or namespace."""
        keys = entity.key_properties
        composite = len(keys) > 1

        members = []
        constructor = self._constructor(entity)
        if constructor:
            members.append(constructor)
        for scalar in entity.scalars:
            order = keys.index(scalar) if composite and scalar.primary_key else None
            members.append(self._scalar_member(scalar, order))
        for navigation in entity.navigations:
            members.append(self._navigation_member(navigation))

        attributes = ""
        if self.settings.use_data_annotations:
            schema = f', Schema = "{entity.schema_name}"' if entity.schema_name else ""
            attributes = f'    [Table("{entity.table_name}"{schema})]\n'

        doc = _doc_comment(entity.comment, "    ") if self.settings.include_comments else ""
        return render_template(
            load_template("entity_class.txt"),
            doc_comment=doc,
            attributes=attributes,
            entity_name=entity.entity_name,
            members="\n\n".join(members),
        )

    def _entity_usings(self) -> str:
        usings = list(ENTITY_USINGS)
        if self.settings.use_data_annotations:
            usings.extend(ANNOTATION_USINGS)
        return "\n".join(usings)

    def _file(self, usings: List[str], body: str) -> str:
        return render_template(
            load_template("csharp_file.txt"),
            usings="\n".join(usings),
            namespace=self.settings.namespace,
            body=body.rstrip("\n"),
        )

    def render_entity_file(self, entities: List[EntityPlan]) -> str:
        """One C# file holding the classes of the given entities."""
        body = "\n".join(self.render_entity_class(e) for e in entities)
        return self._file(self._entity_usings().splitlines(), body)

    # ------------------------------------------------------------------
    # Fluent configuration
    # ------------------------------------------------------------------

    def _property_statements(self, scalar: ScalarProperty) -> List[str]:
        calls = []
        if scalar.name != scalar.column_name:
            calls.append(f'.HasColumnName("{scalar.column_name}")')
        if not scalar.nullable and scalar.clr_type in REFERENCE_TYPES:
            calls.append(".IsRequired()")
        if is_string_type(scalar.clr_type) and scalar.max_length and scalar.max_length > 0:
            calls.append(f".HasMaxLength({scalar.max_length})")
        if scalar.identity:
            calls.append(".HasDatabaseGeneratedOption(DatabaseGeneratedOption.Identity)")
        elif scalar.computed:
            calls.append(".HasDatabaseGeneratedOption(DatabaseGeneratedOption.Computed)")
        if not calls:
            return []
        return [f"{STATEMENT}Property(t => t.{scalar.name})"] + [f"{CONTINUATION}{c}" for c in calls[:-1]] + [
            f"{CONTINUATION}{calls[-1]};"
        ]

    @staticmethod
    def _with(inverse: Optional[str]) -> str:
        return f"t => t.{inverse}" if inverse else ""

    def _relationship_statements(self, mapping: MappingDirective) -> List[str]:
        inverse = self._with(mapping.inverse_navigation)
        cascade = "true" if mapping.cascade_on_delete else "false"

        if mapping.kind == RelationKind.MANY_TO_MANY:
            return [
                f"{STATEMENT}HasMany(t => t.{mapping.navigation})",
                f"{CONTINUATION}.WithMany({inverse})",
                f"{CONTINUATION}.Map(m =>",
                f"{CONTINUATION}{{",
                f'{CONTINUATION}    m.ToTable("{mapping.junction_table}");',
                f"{CONTINUATION}    m.MapLeftKey({_quoted(mapping.left_key_columns)});",
                f"{CONTINUATION}    m.MapRightKey({_quoted(mapping.right_key_columns)});",
                f"{CONTINUATION}}});",
            ]

        has = "HasRequired" if mapping.required else "HasOptional"
        if mapping.kind == RelationKind.ONE_TO_ONE:
            end = "Dependent" if mapping.dependent else "Principal"
            with_call = f"WithRequired{end}" if mapping.required else f"WithOptional{end}"
            lines = [
                f"{STATEMENT}{has}(t => t.{mapping.navigation})",
                f"{CONTINUATION}.{with_call}({inverse})",
            ]
            # Delete behaviour is configured once, from the dependent end
            if mapping.dependent:
                lines.append(f"{CONTINUATION}.WillCascadeOnDelete({cascade})")
            lines[-1] += ";"
            return lines

        foreign_key = _key_lambda(mapping.columns)
        if mapping.dependent:
            head = [
                f"{STATEMENT}{has}(t => t.{mapping.navigation})",
                f"{CONTINUATION}.WithMany({inverse})",
            ]
        else:
            with_call = "WithRequired" if mapping.required else "WithOptional"
            head = [
                f"{STATEMENT}HasMany(t => t.{mapping.navigation})",
                f"{CONTINUATION}.{with_call}({inverse})",
            ]
        return head + [
            f"{CONTINUATION}.HasForeignKey({foreign_key})",
            f"{CONTINUATION}.WillCascadeOnDelete({cascade});",
        ]

    def render_configuration_class(self, entity: EntityPlan) -> str:
        """EntityTypeConfiguration<T> class block for one entity."""
        statements = []
        if entity.schema_name:
            statements.append(f'{STATEMENT}ToTable("{entity.table_name}", "{entity.schema_name}");')
        else:
            statements.append(f'{STATEMENT}ToTable("{entity.table_name}");')

        keys = [k.name for k in entity.key_properties]
        if keys:
            statements.append(f"{STATEMENT}HasKey({_key_lambda(keys)});")

        if not self.settings.use_data_annotations:
            for scalar in entity.scalars:
                lines = self._property_statements(scalar)
                if lines:
                    statements.append("")
                    statements.extend(lines)

        for mapping in entity.mappings:
            statements.append("")
            statements.extend(self._relationship_statements(mapping))

        return render_template(
            load_template("configuration_class.txt"),
            entity_name=entity.entity_name,
            statements="\n".join(statements),
        )

    def render_configuration_file(self, entity: EntityPlan) -> str:
        return self._file(CONFIGURATION_USINGS, self.render_configuration_class(entity))

    # ------------------------------------------------------------------
    # DbContext
    # ------------------------------------------------------------------

    def render_db_context_file(self, plan: GenerationPlan) -> str:
        entities = plan.model_entities
        set_name = pluralize if self.settings.is_pluralize else str

        db_sets = "\n".join(
            f"{MEMBER}public virtual DbSet<{e.entity_name}> {set_name(e.entity_name)} {{ get; set; }}"
            for e in entities
        )
        if self.wants(CONFIGURATION):
            registrations = "\n".join(
                f"{STATEMENT}modelBuilder.Configurations.Add(new {e.entity_name}Configuration());"
                for e in entities
            )
        else:
            registrations = ""

        body = render_template(
            load_template("dbcontext_class.txt"),
            context_name=self.settings.db_context_name,
            db_sets=db_sets,
            registrations=registrations,
        )
        return self._file(CONTEXT_USINGS, body)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @staticmethod
    def _write(path: Path, content: str) -> Path:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            log_error(error=e, operation="writing generated file", file_path=str(path))
            raise
        logger.info(f"Generated {path}")
        return path

    def write(self, plan: GenerationPlan, output_directory: Optional[Path] = None) -> List[Path]:
        """
        Write the selected elements of a plan to disk.

        Args:
            plan: Generation plan from the orchestrator
            output_directory: Overrides settings.output_directory

        Returns:
            Paths of all written files
        """
        out = Path(output_directory or self.settings.output_directory)
        entities = plan.model_entities
        written: List[Path] = []

        if self.wants(POCO):
            if self.settings.generate_separate_files:
                for entity in entities:
                    path = out / ENTITIES_DIR / f"{entity.entity_name}.cs"
                    written.append(self._write(path, self.render_entity_file([entity])))
            elif entities:
                path = out / ENTITIES_DIR / "Entities.cs"
                written.append(self._write(path, self.render_entity_file(entities)))

        if self.wants(CONFIGURATION):
            for entity in entities:
                path = out / CONFIGURATIONS_DIR / f"{entity.entity_name}Configuration.cs"
                written.append(self._write(path, self.render_configuration_file(entity)))

        if self.wants(DB_CONTEXT):
            path = out / f"{self.settings.db_context_name}.cs"
            written.append(self._write(path, self.render_db_context_file(plan)))

        return written
