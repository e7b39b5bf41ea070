"""
Config Loader Tests

Tests for config file discovery, format handling, merging over defaults and
error capture. Uses temp project trees to test various scenarios.
"""

import pytest

from svelte_config_cache.config.config_loader import ConfigLoader
from svelte_config_cache.helpers.preprocess import Preprocess, PreprocessKind
from svelte_config_cache.utils.errors import ConfigLoadError
from svelte_config_cache.utils.types import SvelteConfig
from tests.factories import write_config_file

STEM = "svelte.config"


@pytest.fixture
def loader() -> ConfigLoader:
    return ConfigLoader()


@pytest.fixture
def defaults() -> SvelteConfig:
    return SvelteConfig(
        compiler_options={"dev": True, "generate": False},
        preprocess=Preprocess.single(object()),
    )


class TestDiscovery:
    @pytest.mark.asyncio
    async def test_no_config_file_returns_defaults_unchanged(self, loader, defaults, tmp_path):
        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result is defaults
        assert result.load_config_error is None

    @pytest.mark.asyncio
    async def test_config_in_ancestor_directory_is_found(self, loader, defaults, tmp_path):
        path = write_config_file(tmp_path, {"compilerOptions": {"css": "injected"}})
        nested = tmp_path / "src" / "routes"
        nested.mkdir(parents=True)

        result = await loader.resolve(nested, STEM, defaults)

        assert result.config_file == path
        assert result.compiler_options["css"] == "injected"

    @pytest.mark.asyncio
    async def test_nearest_config_file_wins(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, {"compilerOptions": {"level": "root"}})
        nested = tmp_path / "packages" / "ui"
        write_config_file(nested, {"compilerOptions": {"level": "package"}})

        result = await loader.resolve(nested, STEM, defaults)

        assert result.compiler_options["level"] == "package"

    def test_extension_order_decides_between_files_in_one_directory(self, loader, tmp_path):
        write_config_file(tmp_path, {}, ext=".json")
        py_file = write_config_file(tmp_path, {}, ext=".py")

        assert loader.find_config_file(tmp_path, STEM) == py_file

    def test_custom_stem(self, loader, tmp_path):
        path = write_config_file(tmp_path, {}, stem="analysis.config")

        assert loader.find_config_file(tmp_path, "analysis.config") == path
        assert loader.find_config_file(tmp_path, STEM) is None

    def test_restricted_extensions(self, tmp_path):
        write_config_file(tmp_path, {}, ext=".py")

        assert ConfigLoader(extensions=(".yaml",)).find_config_file(tmp_path, STEM) is None


class TestFormats:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("ext", [".yaml", ".yml", ".json", ".py"])
    async def test_compiler_options_merge_over_defaults(self, loader, defaults, tmp_path, ext):
        write_config_file(
            tmp_path, {"compilerOptions": {"dev": False, "runes": True}}, ext=ext
        )

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.load_config_error is None
        assert result.compiler_options == {"dev": False, "generate": False, "runes": True}
        assert result.preprocess is defaults.preprocess

    @pytest.mark.asyncio
    async def test_nested_compiler_options_are_deep_merged(self, loader, tmp_path):
        defaults = SvelteConfig(compiler_options={"dev": True, "cssHash": {"prefix": "s"}})
        write_config_file(tmp_path, {"compiler_options": {"cssHash": {"length": 6}}})

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.compiler_options == {"dev": True, "cssHash": {"prefix": "s", "length": 6}}
        assert defaults.compiler_options == {"dev": True, "cssHash": {"prefix": "s"}}

    @pytest.mark.asyncio
    async def test_empty_file_keeps_defaults(self, loader, defaults, tmp_path):
        path = write_config_file(tmp_path, content="")

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result is not defaults
        assert result.compiler_options == defaults.compiler_options
        assert result.config_file == path
        assert result.load_config_error is None

    @pytest.mark.asyncio
    async def test_tab_indented_json(self, loader, defaults, tmp_path):
        write_config_file(
            tmp_path,
            ext=".json",
            content='{\n\t"compilerOptions": {\n\t\t"customElement": true\n\t}\n}\n',
        )

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.load_config_error is None
        assert result.compiler_options["customElement"] is True

    @pytest.mark.asyncio
    async def test_preprocess_import_spec_replaces_fallback(self, loader, defaults, tmp_path):
        write_config_file(
            tmp_path, {"preprocess": "tests.factories.config_factories:make_upper_case_group"}
        )

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.preprocess.kind is PreprocessKind.SINGLE
        processed = await result.preprocess.apply("script", "let a = 1")
        assert processed.code == "LET A = 1"

    @pytest.mark.asyncio
    async def test_preprocess_import_spec_list(self, loader, defaults, tmp_path):
        write_config_file(
            tmp_path,
            {
                "preprocess": [
                    "tests.factories.config_factories:UpperCaseScript",
                    "tests.factories.config_factories:make_upper_case_group",
                ]
            },
        )

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.preprocess.kind is PreprocessKind.SEQUENCE
        assert len(result.preprocess.groups) == 2

    @pytest.mark.asyncio
    async def test_python_config_can_define_groups_directly(self, loader, defaults, tmp_path):
        write_config_file(
            tmp_path,
            ext=".py",
            content=(
                "class Group:\n"
                "    def style(self, *, content, attributes, filename=None):\n"
                "        return {'code': content.replace('red', 'blue')}\n"
                "\n"
                "config = {'preprocess': [Group()], 'compilerOptions': {'css': 'external'}}\n"
            ),
        )

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert result.compiler_options["css"] == "external"
        processed = await result.preprocess.apply("style", "a { color: red }")
        assert processed.code == "a { color: blue }"


class TestLoadErrors:
    """A found-but-broken file yields defaults plus load_config_error, never an exception."""

    @pytest.mark.asyncio
    async def test_invalid_yaml(self, loader, defaults, tmp_path):
        path = write_config_file(tmp_path, content="compilerOptions: {dev: [\n")

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert isinstance(result.load_config_error, ConfigLoadError)
        assert result.load_config_error.path == path
        assert result.compiler_options == defaults.compiler_options
        assert result.preprocess is defaults.preprocess
        assert result.config_file == path
        assert defaults.load_config_error is None

    @pytest.mark.asyncio
    async def test_top_level_list(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, content="- a\n- b\n")

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert "expected a mapping" in str(result.load_config_error)

    @pytest.mark.asyncio
    async def test_compiler_options_not_a_mapping(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, {"compilerOptions": ["dev"]})

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert "'compilerOptions' must be a mapping" in str(result.load_config_error)
        assert result.compiler_options == defaults.compiler_options

    @pytest.mark.asyncio
    async def test_python_config_raising(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, ext=".py", content="raise ValueError('bad config')\n")

        result = await loader.resolve(tmp_path, STEM, defaults)

        error = result.load_config_error
        assert isinstance(error, ConfigLoadError)
        assert isinstance(error.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_python_config_without_config_attribute(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, ext=".py", content="options = {}\n")

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert "does not define a module-level 'config'" in str(result.load_config_error)

    @pytest.mark.asyncio
    async def test_unimportable_preprocessor(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, {"preprocess": "not_a_real_module_xyz:group"})

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert "cannot import preprocessor" in str(result.load_config_error)
        assert result.preprocess is defaults.preprocess

    @pytest.mark.asyncio
    async def test_malformed_preprocess_spec(self, loader, defaults, tmp_path):
        write_config_file(tmp_path, {"preprocess": ["no_colon_here"]})

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert "expected 'module:attribute'" in str(result.load_config_error)

    @pytest.mark.asyncio
    async def test_invalid_encoding(self, loader, defaults, tmp_path):
        path = tmp_path / f"{STEM}.yaml"
        path.write_bytes(b"compilerOptions:\n  name: \xff\xfe\n")

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert isinstance(result.load_config_error, ConfigLoadError)

    @pytest.mark.asyncio
    async def test_invalid_json(self, loader, defaults, tmp_path):
        path = write_config_file(tmp_path, ext=".json", content='{"compilerOptions": {,}}')

        result = await loader.resolve(tmp_path, STEM, defaults)

        assert isinstance(result.load_config_error, ConfigLoadError)
        assert "invalid syntax" in str(result.load_config_error)
        assert result.config_file == path
        assert result.compiler_options == defaults.compiler_options
