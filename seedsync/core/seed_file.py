"""
Seed files: a validated collection of seed entries sharing defaults.
"""

import logging
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, ValidationError, field_validator

from seedsync.core.naming import NAMING_STRATEGIES
from seedsync.core.options import SeedOptions
from seedsync.core.seed_entry import SeedEntry, to_list
from seedsync.exceptions import InvalidSeed

logger = logging.getLogger(__name__)

NamingStrategyName = Literal["AsIs", "SnakeCase"]
Environments = Union[str, List[str]]
SynchronizePolicy = Union[StrictBool, List[str]]

DEFAULT_NAMING_STRATEGY = "SnakeCase"


class EntitySchema(BaseModel):
    """Meta fields of one entity. Any other field is a column."""

    model_config = ConfigDict(extra="allow")

    id: Union[str, Dict[str, Any]] = Field(alias="$id")
    id_column_name: Optional[Union[str, List[str]]] = Field(default=None, alias="$idColumnName")
    schema_name: Optional[str] = Field(default=None, alias="$schemaName")
    naming_strategy: Optional[NamingStrategyName] = Field(default=None, alias="$namingStrategy")
    synchronize: Optional[SynchronizePolicy] = Field(default=None, alias="$synchronize")
    env: Optional[Environments] = Field(default=None, alias="$env")


class SeedFileSchema(BaseModel):
    """Shape of a rendered seed file."""

    model_config = ConfigDict(extra="forbid")

    synchronize: SynchronizePolicy
    entities: List[Dict[str, EntitySchema]]
    naming_strategy: Optional[NamingStrategyName] = Field(default=None, alias="namingStrategy")
    schema_name: Optional[str] = Field(default=None, alias="schemaName")
    tables: Optional[Dict[str, str]] = None
    env: Optional[Environments] = Field(default=None, alias="$env")

    @field_validator("entities")
    @classmethod
    def one_table_per_entity(cls, entities: List[Dict[str, EntitySchema]]):
        for index, entity in enumerate(entities):
            if len(entity) != 1:
                raise ValueError(
                    f"entity {index} must name exactly one table, found {len(entity)}"
                )
        return entities


def _format_errors(error: ValidationError) -> str:
    messages = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "root"
        messages.append(f"{location}: {detail['msg']}")
    return ", ".join(messages)


class SeedFile:
    """A collection of SeedEntry's declared together."""

    def __init__(
        self,
        data: Mapping[str, Any],
        options: Optional[SeedOptions] = None,
        environment: Optional[str] = None,
        file_name: Optional[str] = None,
    ):
        """
        Build entries from already validated seed file data.

        Args:
            data: Rendered seed file contents
            options: Run options passed down to every entry
            environment: The active environment, used for $env and synchronize lists
            file_name: Where the data came from, for error messages
        """
        self.file_name = file_name
        self.options = options or SeedOptions()
        self.environment = environment

        naming_strategy_name = data.get("namingStrategy") or DEFAULT_NAMING_STRATEGY
        naming_strategy = NAMING_STRATEGIES.get(naming_strategy_name)

        if naming_strategy is None:
            raise InvalidSeed(f"Invalid namingStrategy {naming_strategy_name}")

        environments = to_list(data.get("$env"))

        self.entries: List[SeedEntry] = [
            SeedEntry(
                entity,
                naming_strategy=naming_strategy,
                table_mapping=data.get("tables") or {},
                schema_name=data.get("schemaName"),
                synchronize=data.get("synchronize", False),
                environments=environments,
                options=self.options,
                environment=environment,
            )
            for entity in data.get("entities", [])
        ]

        logger.debug(f"Loaded {len(self.entries)} entries from {file_name or 'unknown file'}")

    @classmethod
    def validate(cls, raw: Any, file_name: Optional[str] = None) -> None:
        """
        Check rendered seed file data against the seed file schema.

        Raises:
            InvalidSeed: describing every violation, with the file name
        """
        try:
            SeedFileSchema.model_validate(raw)
        except ValidationError as e:
            raise InvalidSeed(
                f"Validation error in {file_name or 'unknown file'}: {_format_errors(e)}"
            ) from e

    @classmethod
    def load_from_rendered_file(
        cls,
        raw: Any,
        options: Optional[SeedOptions] = None,
        file_name: Optional[str] = None,
        environment: Optional[str] = None,
    ) -> "SeedFile":
        cls.validate(raw, file_name)
        return cls(raw, options=options, environment=environment, file_name=file_name)
