"""YAML config loader with environment variable overlay, and the service factory.

Environment values win over the file.
Env var naming: BOARDCLUSTER__{section}__{key} (double underscore separator)
e.g., BOARDCLUSTER__CLUSTERING__MIN_CLUSTER_SIZE overrides clustering.min_cluster_size
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from dotenv import load_dotenv

from boardcluster.domain.errors import ConfigurationError
from boardcluster.domain.models import ClusteringConfig

if TYPE_CHECKING:
    from boardcluster.ports.embedding import EmbeddingPort
    from boardcluster.ports.observability import ClusteringObserver
    from boardcluster.services.smart_clustering import SmartClusteringService

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

ENV_PREFIX = "BOARDCLUSTER__"


@dataclass
class CommunitySettings:
    resolution: float = 1.0
    seed: int = 42


@dataclass
class LabelingSettings:
    dictionary_path: str = ""  # empty: packaged defaults
    tag_coverage_threshold: float = 0.6
    max_label_length: int = 25


@dataclass
class SemanticSettings:
    adapter: str = "lexical"  # lexical | embedding


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    events: bool = False  # forward pipeline events to the log


@dataclass
class Settings:
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    community: CommunitySettings = field(default_factory=CommunitySettings)
    labeling: LabelingSettings = field(default_factory=LabelingSettings)
    semantic: SemanticSettings = field(default_factory=SemanticSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


_settings: Settings | None = None


def get_settings(config_path: str = "config/default.yaml") -> Settings:
    """Process-wide settings, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings(config_path)
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads."""
    global _settings
    _settings = None


def load_settings(config_path: str | Path) -> Settings:
    """Read *config_path* (if present), overlay .env and environment values, validate."""
    settings = Settings()

    config_file = Path(config_path)
    if config_file.exists():
        try:
            with open(config_file, encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid config file {config_file}: {e}") from e
        settings = _apply_yaml(settings, yaml_config)

    load_dotenv(_PROJECT_ROOT / ".env", override=False)
    settings = _apply_env_vars(settings)

    settings.clustering.validate()
    return settings


def _apply_yaml(settings: Settings, yaml_config: dict[str, Any]) -> Settings:
    if "clustering" in yaml_config:
        settings.clustering = ClusteringConfig.from_dict(
            yaml_config["clustering"] or {}, base=settings.clustering
        )

    if "community" in yaml_config:
        com = yaml_config["community"] or {}
        settings.community = CommunitySettings(
            resolution=com.get("resolution", settings.community.resolution),
            seed=com.get("seed", settings.community.seed),
        )

    if "labeling" in yaml_config:
        lab = yaml_config["labeling"] or {}
        settings.labeling = LabelingSettings(
            dictionary_path=lab.get("dictionary_path", settings.labeling.dictionary_path) or "",
            tag_coverage_threshold=lab.get("tag_coverage_threshold", settings.labeling.tag_coverage_threshold),
            max_label_length=lab.get("max_label_length", settings.labeling.max_label_length),
        )

    if "semantic" in yaml_config:
        sem = yaml_config["semantic"] or {}
        settings.semantic = SemanticSettings(
            adapter=sem.get("adapter", settings.semantic.adapter),
        )

    if "logging" in yaml_config:
        log = yaml_config["logging"] or {}
        settings.logging = LoggingSettings(
            level=log.get("level", settings.logging.level),
            format=log.get("format", settings.logging.format),
            events=log.get("events", settings.logging.events),
        )

    return settings


def _apply_env_vars(settings: Settings) -> Settings:
    """Apply environment variable overrides. Format: BOARDCLUSTER__SECTION__KEY."""
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        parts = key[len(ENV_PREFIX):].lower().split("__")
        if len(parts) != 2:
            continue

        section, field_name = parts
        _set_field(settings, section, field_name, value)

    return settings


def _set_field(settings: Settings, section: str, field_name: str, value: str) -> None:
    """Coerce *value* to the field's current type and assign it."""
    section_obj = getattr(settings, section, None)
    if section_obj is None or not hasattr(section_obj, field_name):
        return

    current_value = getattr(section_obj, field_name)

    # Coerce to the type of the current value
    try:
        if isinstance(current_value, Enum):
            setattr(section_obj, field_name, type(current_value)(value.lower()))
        elif isinstance(current_value, bool):
            setattr(section_obj, field_name, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, int):
            setattr(section_obj, field_name, int(value))
        elif isinstance(current_value, float):
            setattr(section_obj, field_name, float(value))
        elif current_value is None:
            # Optional numeric fields (e.g. min_pts)
            setattr(section_obj, field_name, int(value) if value.strip() else None)
        else:
            setattr(section_obj, field_name, value)
    except ValueError as e:
        raise ConfigurationError(
            f"Invalid value for {ENV_PREFIX}{section.upper()}__{field_name.upper()}: {value!r}"
        ) from e


# ── Service factory ──


def build_observer(settings: Settings) -> ClusteringObserver | None:
    if not settings.logging.events:
        return None
    from boardcluster.adapters.observability.logging_observer import LoggingObserver

    return LoggingObserver(level=logging.INFO)


def build_service(
    settings: Settings | None = None,
    *,
    embedding: EmbeddingPort | None = None,
    observer: ClusteringObserver | None = None,
) -> SmartClusteringService:
    """Wire adapters selected by *settings* into a SmartClusteringService."""
    from boardcluster.services.labeling import LabelDictionaries, LabelGenerator
    from boardcluster.services.similarity import SimilarityEngine
    from boardcluster.services.smart_clustering import SmartClusteringService

    settings = settings or get_settings()

    adapter = settings.semantic.adapter
    if adapter == "lexical":
        from boardcluster.adapters.semantic.lexical import LexicalSemanticSimilarity
        semantic = LexicalSemanticSimilarity()

    elif adapter == "embedding":
        if embedding is None:
            raise ConfigurationError("semantic.adapter 'embedding' needs an EmbeddingPort")
        from boardcluster.adapters.semantic.embedding_cosine import EmbeddingSemanticSimilarity
        semantic = EmbeddingSemanticSimilarity(embedding)

    else:
        raise ConfigurationError(f"Unknown semantic adapter: {adapter}")

    dictionaries = LabelDictionaries.load(settings.labeling.dictionary_path or None)
    labeler = LabelGenerator(
        dictionaries,
        tag_coverage_threshold=settings.labeling.tag_coverage_threshold,
        max_label_length=settings.labeling.max_label_length,
    )

    return SmartClusteringService(
        engine=SimilarityEngine(semantic),
        labeler=labeler,
        observer=observer or build_observer(settings),
        community_resolution=settings.community.resolution,
        community_seed=settings.community.seed,
    )
