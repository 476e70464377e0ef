"""
Tests for per-model tagging configuration.
"""

import pytest

from taggable.config.config import TaggableConfig, config_from_env
from taggable.errors import ConfigurationError


def test_defaults():
    config = TaggableConfig()
    assert config.field_name == "tags"
    assert config.separator == ","
    assert config.index_enabled is True
    assert config.aggregation_enabled is False
    assert config.shared_state is False


def test_index_collection_name_follows_collection_and_field():
    assert TaggableConfig().index_collection_for("my_models") == "my_models_tags_index"
    assert TaggableConfig(field_name="keywords").index_collection_for("articles") == "articles_keywords_index"
    assert TaggableConfig(index_collection_name="cloud").index_collection_for("articles") == "cloud"


def test_meta_collection_name():
    assert TaggableConfig().meta_collection_for("docs") == "docs_tags_index_meta"


@pytest.mark.parametrize("separator", ["", None, 3])
def test_rejects_bad_separator(separator):
    with pytest.raises(ConfigurationError):
        TaggableConfig(separator=separator)


@pytest.mark.parametrize("field_name", ["", "  ", "has.dot", "$tags", "1abc"])
def test_rejects_bad_field_name(field_name):
    with pytest.raises(ConfigurationError):
        TaggableConfig(field_name=field_name)


def test_index_default_scope_requires_scope():
    with pytest.raises(ConfigurationError):
        TaggableConfig(index_default_scope=True)


def test_rejects_non_dict_scope():
    with pytest.raises(ConfigurationError):
        TaggableConfig(default_scope=[("published", True)])


def test_configuration_error_is_value_error():
    with pytest.raises(ValueError):
        TaggableConfig(separator="")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("TAGS_FIELD", "keywords")
    monkeypatch.setenv("TAGS_SEPARATOR", ";")
    monkeypatch.setenv("TAGS_AGGREGATION", "true")
    monkeypatch.setenv("TAGS_SHARED_STATE", "1")
    monkeypatch.setenv("TAGS_INDEX_ENABLED", "no")

    config = config_from_env()
    assert config.field_name == "keywords"
    assert config.separator == ";"
    assert config.aggregation_enabled is True
    assert config.shared_state is True
    assert config.index_enabled is False


def test_config_from_env_rejects_empty_separator(monkeypatch):
    monkeypatch.setenv("TAGS_SEPARATOR", "")
    with pytest.raises(ConfigurationError):
        config_from_env()
