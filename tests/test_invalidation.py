"""Tests for incremental invalidation of the story index."""

from __future__ import annotations

import pytest

from storyindex.errors import AggregateIndexingError, UnresolvedReferenceError
from storyindex.models import UNPROCESSED, DocsEntry, Specifier, StoriesCacheEntry
from tests._fixtures.project_builder import ProjectBuilder, run, stories_json

_DOCS = """
    import * as ButtonStories from '../stories/Button.stories';

    <Meta of={ButtonStories} />
"""


def _split_project(project: ProjectBuilder):
    project.write(
        {
            "stories/Button.stories.json": stories_json("Atoms/Button", "Primary"),
            "docs/Button.mdx": _DOCS,
        }
    )
    stories = project.specifier("./stories/*.stories.json")
    docs = project.specifier("./docs/*.mdx")
    return project.generator([stories, docs]), stories, docs


def test_docs_in_another_specifier_depend_on_stories(project: ProjectBuilder) -> None:
    generator, stories, docs = _split_project(project)

    index = run(generator.get_index())

    entry = index.entries["atoms-button--docs"]
    assert entry.stories_imports == ["./stories/Button.stories.json"]
    cache_entry = generator.get_cache_entry(stories, "./stories/Button.stories.json")
    assert isinstance(cache_entry, StoriesCacheEntry)
    assert cache_entry.dependents == [f"{project.path().as_posix()}/docs/Button.mdx"]
    assert isinstance(generator.get_cache_entry(docs, "./docs/Button.mdx"), DocsEntry)


def test_invalidating_stories_resets_dependent_docs(project: ProjectBuilder) -> None:
    generator, stories, docs = _split_project(project)
    run(generator.get_index())

    project.write({"stories/Button.stories.json": stories_json("Atoms/Renamed", "Primary")})
    generator.invalidate(stories, "./stories/Button.stories.json", False)

    assert generator.get_cache_entry(stories, "./stories/Button.stories.json") is UNPROCESSED
    assert generator.get_cache_entry(docs, "./docs/Button.mdx") is UNPROCESSED

    index = run(generator.get_index())

    assert list(index.entries) == ["atoms-renamed--primary", "atoms-renamed--docs"]


def test_removing_docs_file_drops_entry_and_dependency(project: ProjectBuilder) -> None:
    generator, stories, docs = _split_project(project)
    run(generator.get_index())

    project.remove("docs/Button.mdx")
    generator.invalidate(docs, "./docs/Button.mdx", True)

    assert generator.get_cache_entry(docs, "./docs/Button.mdx") is None
    assert generator.get_cache_entry(stories, "./stories/Button.stories.json").dependents == []
    index = run(generator.get_index())
    assert list(index.entries) == ["atoms-button--primary"]


def test_removing_referenced_stories_breaks_dependent_docs(project: ProjectBuilder) -> None:
    generator, stories, _ = _split_project(project)
    run(generator.get_index())

    project.remove("stories/Button.stories.json")
    generator.invalidate(stories, "./stories/Button.stories.json", True)

    with pytest.raises(AggregateIndexingError) as excinfo:
        run(generator.get_index())

    assert isinstance(excinfo.value.errors[0], UnresolvedReferenceError)
    assert excinfo.value.errors[0].import_paths == ["./docs/Button.mdx"]


def test_unchanged_invalidation_rebuilds_identical_index(project: ProjectBuilder) -> None:
    generator, stories, _ = _split_project(project)
    first = run(generator.get_index())

    generator.invalidate(stories, "./stories/Button.stories.json", False)
    second = run(generator.get_index())

    assert second is not first
    assert second.to_dict() == first.to_dict()
    cache_entry = generator.get_cache_entry(stories, "./stories/Button.stories.json")
    assert len(cache_entry.dependents) == 1


def test_invalidating_a_new_file_adds_it(project: ProjectBuilder) -> None:
    generator, stories, _ = _split_project(project)
    run(generator.get_index())

    project.write({"stories/Card.stories.json": stories_json("Atoms/Card", "Default")})
    generator.invalidate(stories, "./stories/Card.stories.json", False)
    index = run(generator.get_index())

    assert "atoms-card--default" in index.entries


def test_invalidating_unknown_specifier_raises(project: ProjectBuilder) -> None:
    generator, _, _ = _split_project(project)
    run(generator.get_index())

    with pytest.raises(ValueError, match="does not have a matching cache entry"):
        generator.invalidate(Specifier("./stories", "*.stories.json"), "./stories/x.stories.json", False)


def test_restoring_referenced_stories_recovers_dependent_docs(project: ProjectBuilder) -> None:
    generator, stories, docs = _split_project(project)
    run(generator.get_index())

    project.remove("stories/Button.stories.json")
    generator.invalidate(stories, "./stories/Button.stories.json", True)
    with pytest.raises(AggregateIndexingError):
        run(generator.get_index())

    project.write({"stories/Button.stories.json": stories_json("Atoms/Button", "Primary")})
    generator.invalidate(stories, "./stories/Button.stories.json", False)
    index = run(generator.get_index())

    assert list(index.entries) == ["atoms-button--primary", "atoms-button--docs"]
    assert isinstance(generator.get_cache_entry(docs, "./docs/Button.mdx"), DocsEntry)


def test_docs_invalidation_leaves_other_unresolved_docs_cached(project: ProjectBuilder) -> None:
    project.write(
        {
            "docs/Broken.mdx": """
                import * as Missing from '../stories/Missing.stories';

                <Meta of={Missing} />
            """,
            "docs/Intro.mdx": '<Meta title="Intro" />\n',
        }
    )
    docs = project.specifier("./docs/*.mdx")
    generator = project.generator([docs])
    with pytest.raises(AggregateIndexingError):
        run(generator.get_index())

    generator.invalidate(docs, "./docs/Intro.mdx", False)

    entry = generator.get_cache_entry(docs, "./docs/Broken.mdx")
    assert not isinstance(entry, DocsEntry)
    assert entry is not UNPROCESSED
