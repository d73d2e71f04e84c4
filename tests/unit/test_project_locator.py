"""
Unit tests for ProjectLocator config and stylesheet discovery.
"""

from pathlib import Path

import pytest

from tailwind_sorter.project import ProjectContext, ProjectLocator

CONFIG_TEXT = "module.exports = { content: ['*.html'] }\n"


def touch(path: Path, text: str = CONFIG_TEXT) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


@pytest.fixture
def project_dir(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.mark.unit
class TestConfigDiscovery:
    def test_finds_config_in_root(self, project_dir):
        config = touch(project_dir / "tailwind.config.js")
        css = touch(project_dir / "styles.css", "@tailwind base;\n")

        context = ProjectLocator().locate(project_dir)

        assert context == ProjectContext(
            root_path=project_dir.resolve(),
            config_path=config.resolve(),
            stylesheet_path=css.resolve(),
        )
        assert context.found

    def test_finds_config_in_config_directory(self, project_dir):
        config = touch(project_dir / "config" / "tailwind.config.js")
        css = touch(
            project_dir / "app/assets/stylesheets/application.tailwind.css", "@tailwind base;\n"
        )

        context = ProjectLocator().locate(project_dir)

        assert context.config_path == config.resolve()
        assert context.stylesheet_path == css.resolve()

    def test_root_config_beats_config_directory(self, project_dir):
        root_config = touch(project_dir / "tailwind.config.ts")
        touch(project_dir / "config" / "tailwind.config.js")

        context = ProjectLocator().locate(project_dir)

        assert context.config_path == root_config.resolve()

    def test_finds_cjs_when_js_is_absent(self, project_dir):
        config = touch(project_dir / "tailwind.config.cjs")
        css = touch(project_dir / "src" / "styles.css", "@tailwind base;\n")

        context = ProjectLocator().locate(project_dir)

        assert context.config_path == config.resolve()
        assert context.stylesheet_path == css.resolve()

    @pytest.mark.parametrize(
        "present, expected",
        [
            (["tailwind.config.mjs", "tailwind.config.ts"], "tailwind.config.mjs"),
            (["tailwind.config.ts", "tailwind.config.cjs"], "tailwind.config.cjs"),
            (["tailwind.config.js", "tailwind.config.cjs"], "tailwind.config.js"),
            (["config/tailwind.config.ts", "config/tailwind.config.mjs"], "config/tailwind.config.mjs"),
        ],
    )
    def test_pattern_precedence(self, project_dir, present, expected):
        for name in present:
            touch(project_dir / name)
        context = ProjectLocator().locate(project_dir)
        assert context.config_path == (project_dir / expected).resolve()

    def test_walks_up_from_nested_directory(self, project_dir):
        config = touch(project_dir / "tailwind.config.js")
        nested = project_dir / "app" / "views" / "pages"
        nested.mkdir(parents=True)

        context = ProjectLocator().locate(nested)

        assert context.root_path == project_dir.resolve()
        assert context.config_path == config.resolve()

    def test_nearest_project_wins(self, project_dir):
        touch(project_dir / "tailwind.config.js")
        inner = project_dir / "packages" / "ui"
        inner_config = touch(inner / "tailwind.config.cjs")

        context = ProjectLocator().locate(inner)

        assert context.root_path == inner.resolve()
        assert context.config_path == inner_config.resolve()

    def test_directory_named_like_config_is_ignored(self, project_dir):
        (project_dir / "tailwind.config.js").mkdir()
        config = touch(project_dir / "tailwind.config.ts")
        assert ProjectLocator().locate(project_dir).config_path == config.resolve()

    def test_no_project_found(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        locator = ProjectLocator(config_patterns=("definitely-not-here.config.js",))

        context = locator.locate(empty)

        assert context == ProjectContext()
        assert not context.found

    def test_defaults_to_current_directory(self, project_dir, monkeypatch):
        config = touch(project_dir / "tailwind.config.js")
        monkeypatch.chdir(project_dir)
        assert ProjectLocator().locate().config_path == config.resolve()


@pytest.mark.unit
class TestStylesheetDiscovery:
    def test_first_stylesheet_pattern_wins(self, project_dir):
        touch(project_dir / "tailwind.config.js")
        css = touch(project_dir / "styles.css", "")
        touch(project_dir / "src" / "styles.css", "")
        assert ProjectLocator().locate(project_dir).stylesheet_path == css.resolve()

    def test_missing_stylesheet_is_none(self, project_dir):
        touch(project_dir / "tailwind.config.js")
        context = ProjectLocator().locate(project_dir)
        assert context.stylesheet_path is None
        assert context.found

    def test_stylesheet_is_only_searched_in_project_root(self, project_dir):
        touch(project_dir / "styles.css", "")
        inner = project_dir / "inner"
        touch(inner / "tailwind.config.js")
        assert ProjectLocator().locate(inner).stylesheet_path is None
