"""Tests for storyindex.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from storyindex.config import ConfigError, StoryIndexConfig, load_config
from storyindex.generator import StoryIndexGenerator
from storyindex.indexers import StoriesFileIndexer
from storyindex.specifiers import DEFAULT_FILES_PATTERN


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, StoryIndexConfig)
    assert config.config_dir == tmp_path.resolve()
    assert config.working_dir == tmp_path.resolve()
    assert config.specifiers == []
    assert config.docs.autodocs == "tag"
    assert config.docs.default_name == "Docs"
    assert config.build.disable_auto_docs is False
    assert config.story_sort is None
    assert config.indexers.enabled == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_dir = tmp_path / ".storybook"
    config_dir.mkdir()
    (config_dir / ".storyindex.yml").write_text(
        """
working_dir: ".."
stories:
  - "../src/**/*.mdx"
  - directory: "../components"
    files: "*.stories.json"
    title_prefix: "Lib"
  - "../docs"
docs:
  autodocs: true
  default_name: "Overview"
build:
  test:
    disable_auto_docs: true
story_sort:
  method: alphabetical
  order: [Intro, "*"]
  includeNames: true
indexers:
  enabled: [stories-file]
""",
        encoding="utf-8",
    )

    config = load_config(config_dir / ".storyindex.yml")

    assert config.config_dir == config_dir.resolve()
    assert config.working_dir == tmp_path.resolve()
    assert [(s.directory, s.files, s.title_prefix) for s in config.specifiers] == [
        ("./src", "**/*.mdx", ""),
        ("./components", "*.stories.json", "Lib"),
        ("./docs", DEFAULT_FILES_PATTERN, ""),
    ]
    assert config.docs.autodocs is True
    assert config.docs.default_name == "Overview"
    assert config.build.disable_auto_docs is True
    assert config.story_sort == {
        "method": "alphabetical",
        "order": ["Intro", "*"],
        "includeNames": True,
    }
    assert config.indexers.enabled == ["stories-file"]


def test_load_config_accepts_single_string_and_tag_autodocs(tmp_path: Path) -> None:
    (tmp_path / ".storyindex.yml").write_text(
        'stories: "stories/*.stories.yaml"\ndocs:\n  autodocs: "tag"\n', encoding="utf-8"
    )

    config = load_config(tmp_path)

    assert len(config.specifiers) == 1
    assert config.specifiers[0].directory == "./stories"
    assert config.docs.autodocs == "tag"


@pytest.mark.parametrize(
    "content, message",
    [
        ("- just\n- a list\n", "mapping at the root"),
        ("stories: [\n", "Failed to parse"),
        ("stories:\n  - files: '*.mdx'\n", "missing a directory"),
        ("stories:\n  - 12\n", "Unsupported stories entry"),
        ("docs:\n  autodocs: sometimes\n", "docs.autodocs"),
        ("story_sort: alphabetical\n", "must be a mapping"),
        ("story_sort:\n  method: random\n", "Unknown story_sort method"),
        ("story_sort:\n  order: Intro\n", "must be a list"),
    ],
)
def test_load_config_rejects_invalid_settings(tmp_path: Path, content: str, message: str) -> None:
    (tmp_path / ".storyindex.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError, match=message):
        load_config(tmp_path)


def test_generator_from_config_uses_settings(tmp_path: Path) -> None:
    (tmp_path / ".storyindex.yml").write_text(
        "stories: src/*.stories.json\nbuild:\n  test:\n    disableAutoDocs: true\n",
        encoding="utf-8",
    )
    config = load_config(tmp_path)

    generator = StoryIndexGenerator.from_config(config, indexers=[StoriesFileIndexer()])

    assert generator.specifiers == config.specifiers
    assert generator.working_dir == tmp_path.resolve()
    assert generator.options.disable_auto_docs is True
    assert isinstance(generator.options.indexers[0], StoriesFileIndexer)
