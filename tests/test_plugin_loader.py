"""
Tests for the plugin loader.
"""

import asyncio
import contextlib
import importlib.util
import json
import shutil
import sys
import sysconfig
from pathlib import Path

import pytest

from plugin_host.framework.plugin_management import plugin_loader
from plugin_host.framework.plugin_management.plugin_loader import PluginLoader
from plugin_host.infrastructure.exceptions import LoadError


class TestPluginLoading:
    """Loading plugin sources into descriptors."""

    def test_load_function_plugin(self, write_plugin):
        path = write_plugin("greeter", """
            def plugin(ctx):
                return "hello " + ctx["args"]["who"]
        """)

        descriptor = PluginLoader().load("greeter", path)

        assert descriptor.name == "greeter"
        assert descriptor.source_path == path.resolve()
        assert descriptor.invoke({"args": {"who": "world"}}) == "hello world"
        assert descriptor.min_host_version is None
        assert descriptor.validate_arguments is None

    def test_async_plugin_is_loaded_as_is(self, write_plugin):
        path = write_plugin("async_one", """
            async def plugin(ctx):
                return 42
        """)

        descriptor = PluginLoader().load("async_one", path)

        assert asyncio.run(descriptor.invoke({})) == 42

    def test_metadata_from_callable_attributes(self, write_plugin):
        path = write_plugin("described", """
            def plugin(ctx):
                return None

            plugin.min_version = "0.5.0"
            plugin.validate_arguments = lambda args: "key" in args
            plugin.events = ["sceneCreated", "actorCreated"]
            plugin.authors = "someone"
            plugin.description = "Adds labels"
            plugin.version = "1.2.3"
        """)

        descriptor = PluginLoader().load("described", path)

        assert descriptor.min_host_version == "0.5.0"
        assert descriptor.validate_arguments({"key": 1}) is True
        assert descriptor.validate_arguments({}) is False
        assert descriptor.declared_events == ["sceneCreated", "actorCreated"]
        assert descriptor.authors == ["someone"]
        assert descriptor.description == "Adds labels"
        assert descriptor.version == "1.2.3"

    def test_metadata_from_module_attributes(self, write_plugin):
        path = write_plugin("module_meta", """
            min_version = "2.0.0"
            events = ["sceneCreated"]

            def validate_arguments(args):
                return isinstance(args, dict)

            async def plugin(ctx):
                return None
        """)

        descriptor = PluginLoader().load("module_meta", path)

        assert descriptor.min_host_version == "2.0.0"
        assert descriptor.declared_events == ["sceneCreated"]
        assert descriptor.validate_arguments({}) is True

    def test_callable_attributes_take_precedence_over_module(self, write_plugin):
        path = write_plugin("precedence", """
            min_version = "9.9.9"

            def plugin(ctx):
                return None

            plugin.min_version = "0.1.0"
        """)

        descriptor = PluginLoader().load("precedence", path)

        assert descriptor.min_host_version == "0.1.0"

    def test_package_plugin_with_metadata_file(self, tmp_path):
        package = tmp_path / "labeler"
        package.mkdir()
        (package / "helpers.py").write_text("def label(x):\n    return x.upper()\n")
        (package / "__init__.py").write_text(
            "from .helpers import label\n\n"
            "def plugin(ctx):\n"
            "    return label(ctx['data'])\n"
        )
        (package / "plugin.yaml").write_text(
            "name: labeler\n"
            "version: 0.3.0\n"
            "authors: [alice, bob]\n"
            "events: [sceneCreated]\n"
            "description: Uppercases things\n"
        )

        descriptor = PluginLoader().load("labels", package)

        assert descriptor.invoke({"data": "abc"}) == "ABC"
        assert descriptor.declared_name == "labeler"
        assert descriptor.version == "0.3.0"
        assert descriptor.authors == ["alice", "bob"]
        assert descriptor.declared_events == ["sceneCreated"]
        assert descriptor.description == "Uppercases things"

    def test_invalid_metadata_file_is_ignored(self, tmp_path):
        package = tmp_path / "broken_meta"
        package.mkdir()
        (package / "__init__.py").write_text("def plugin(ctx):\n    return 1\n")
        (package / "info.json").write_text("[1, 2, 3]")

        descriptor = PluginLoader().load("broken_meta", package)

        assert descriptor.version is None
        assert descriptor.invoke({}) == 1


class TestLoadErrors:
    """Every load failure surfaces as LoadError."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError) as exc_info:
            PluginLoader().load("ghost", tmp_path / "ghost.py")

        error = exc_info.value
        assert error.plugin_name == "ghost"
        assert error.path.endswith("ghost.py")
        assert isinstance(error.cause, FileNotFoundError)
        assert error.error_code == "PLUGIN_LOAD_ERROR"

    def test_package_without_init(self, tmp_path):
        (tmp_path / "empty_pkg").mkdir()

        with pytest.raises(LoadError):
            PluginLoader().load("empty_pkg", tmp_path / "empty_pkg")

    def test_syntax_error_is_not_left_in_module_cache(self, write_plugin):
        path = write_plugin("broken", """
            def plugin(ctx)
                return 1
        """)
        loader = PluginLoader()

        with pytest.raises(LoadError) as exc_info:
            loader.load("broken", path)

        assert isinstance(exc_info.value.cause, SyntaxError)
        assert loader.module_name_for(path.resolve()) not in sys.modules

    def test_import_time_exception(self, write_plugin):
        path = write_plugin("explodes", """
            raise RuntimeError("boom at import")

            def plugin(ctx):
                return 1
        """)

        with pytest.raises(LoadError, match="boom at import"):
            PluginLoader().load("explodes", path)

    def test_non_callable_export(self, write_plugin):
        path = write_plugin("number", "plugin = 42\n")

        with pytest.raises(LoadError, match="Invalid plugin format for plugin 'number': int"):
            PluginLoader().load("number", path)

    def test_missing_export(self, write_plugin):
        path = write_plugin("nothing", "value = 1\n")

        with pytest.raises(LoadError, match="Invalid plugin format"):
            PluginLoader().load("nothing", path)

    def test_non_callable_argument_predicate(self, write_plugin):
        path = write_plugin("bad_predicate", """
            def plugin(ctx):
                return 1

            plugin.validate_arguments = "yes"
        """)

        with pytest.raises(LoadError, match="validate_arguments is not callable"):
            PluginLoader().load("bad_predicate", path)


class TestReloading:
    """A reload always observes the current on-disk source."""

    def test_reload_sees_edit_with_same_size(self, write_plugin):
        loader = PluginLoader()
        path = write_plugin("counter", """
            def plugin(ctx):
                return 1
        """)
        first = loader.load("counter", path)

        # Same length and very likely the same mtime second as the first version
        write_plugin("counter", """
            def plugin(ctx):
                return 2
        """)
        second = loader.load("counter", path)

        assert first.invoke({}) == 1
        assert second.invoke({}) == 2

    def test_bytecode_cache_is_never_written(self, write_plugin, tmp_path):
        loader = PluginLoader()
        path = write_plugin("uncached", """
            def plugin(ctx):
                return 1
        """)

        loader.load("uncached", path)
        loader.load("uncached", path)

        assert not (tmp_path / "__pycache__").exists()

    def test_previous_module_is_evicted(self, write_plugin):
        loader = PluginLoader()
        path = write_plugin("cached", """
            def plugin(ctx):
                return 1
        """)
        loader.load("cached", path)
        module_name = loader.module_name_for(path.resolve())
        first_module = sys.modules[module_name]

        loader.load("cached", path)

        assert sys.modules[module_name] is not first_module

    def test_evict_removes_package_submodules(self, tmp_path):
        package = tmp_path / "pkg_plugin"
        package.mkdir()
        (package / "inner.py").write_text("VALUE = 1\n")
        (package / "__init__.py").write_text(
            "from . import inner\n\n"
            "def plugin(ctx):\n"
            "    return inner.VALUE\n"
        )
        loader = PluginLoader()
        loader.load("pkg", package)
        module_name = loader.module_name_for(package.resolve())
        assert f"{module_name}.inner" in sys.modules

        removed = loader.evict(package.resolve())

        assert removed == 2
        assert module_name not in sys.modules
        assert f"{module_name}.inner" not in sys.modules


class TestCompileSupport:
    """Sources that need a compile step enable pyximport once per process."""

    def test_compile_support_enabled_once(self, tmp_path, monkeypatch):
        installs = []
        monkeypatch.setattr(plugin_loader, "_install_source_compiler", lambda: installs.append(1))
        for stem in ("compiled_alpha", "compiled_beta"):
            (tmp_path / f"{stem}.pyx").write_text("def plugin(ctx):\n    return 1\n")

        loader = PluginLoader(build_dir=tmp_path / "build")
        # Whether the import itself succeeds depends on a real hook being present
        for stem in ("compiled_alpha", "compiled_beta"):
            with contextlib.suppress(LoadError):
                loader.load(stem, tmp_path / f"{stem}.pyx")

        assert installs == [1]
        assert plugin_loader.is_compile_support_enabled()

    def test_plain_sources_do_not_enable_compile_support(self, write_plugin, monkeypatch):
        installs = []
        monkeypatch.setattr(plugin_loader, "_install_source_compiler", lambda: installs.append(1))
        path = write_plugin("plain", "def plugin(ctx):\n    return 1\n")

        PluginLoader().load("plain", path)

        assert installs == []
        assert not plugin_loader.is_compile_support_enabled()

    def test_missing_compiler_is_a_load_error(self, tmp_path, monkeypatch):
        def unavailable():
            raise ImportError("No module named 'pyximport'")

        monkeypatch.setattr(plugin_loader, "_install_source_compiler", unavailable)
        source = tmp_path / "needs_cython.pyx"
        source.write_text("def plugin(ctx):\n    return 1\n")

        with pytest.raises(LoadError, match="pyximport"):
            PluginLoader(build_dir=tmp_path / "build").load("needs_cython", source)

        assert not plugin_loader.is_compile_support_enabled()

    def test_compiled_source_named_like_stdlib_module(self, tmp_path, monkeypatch):
        monkeypatch.setattr(plugin_loader, "_install_source_compiler", lambda: None)
        source = tmp_path / "json.pyx"
        source.write_text("def plugin(ctx):\n    return 1\n")
        build_dir = tmp_path / "build"

        with contextlib.suppress(LoadError):
            PluginLoader(build_dir=build_dir).load("shadow", source)

        assert sys.modules["json"] is json
        staged = [entry.name for entry in build_dir.iterdir()]
        assert len(staged) == 1
        assert staged[0].startswith(plugin_loader.MODULE_PREFIX)

    def test_evict_leaves_foreign_modules_alone(self, tmp_path):
        loader = PluginLoader(build_dir=tmp_path / "build")

        removed = loader.evict(tmp_path / "json.pyx")

        assert removed == 0
        assert sys.modules["json"] is json

    def test_build_name_follows_source_content(self, tmp_path):
        loader = PluginLoader(build_dir=tmp_path / "build")
        resolved = (tmp_path / "versioned.pyx").resolve()

        first = loader.compiled_module_name_for(resolved, b"return 'v1'")
        second = loader.compiled_module_name_for(resolved, b"return 'v2'")

        assert first != second
        assert first.startswith(loader.module_name_for(resolved))
        assert loader.compiled_module_name_for(resolved, b"return 'v1'") == first


def _can_build_extensions() -> bool:
    if importlib.util.find_spec("pyximport") is None:
        return False
    if shutil.which("cc") is None and shutil.which("gcc") is None:
        return False
    return (Path(sysconfig.get_paths()["include"]) / "Python.h").is_file()


@pytest.mark.skipif(not _can_build_extensions(), reason="needs Cython and a C toolchain")
class TestCompiledReloading:
    """Real pyximport builds of .pyx plugins."""

    def test_edited_source_is_rebuilt(self, tmp_path):
        source = tmp_path / "versioned.pyx"
        source.write_text("def plugin(ctx):\n    return 'v1'\n")
        loader = PluginLoader(build_dir=tmp_path / "build")

        first = loader.load("versioned", source)
        source.write_text("def plugin(ctx):\n    return 'v2'\n")
        second = loader.load("versioned", source)

        assert first.invoke({}) == "v1"
        assert second.invoke({}) == "v2"
        assert plugin_loader.is_compile_support_enabled()

    def test_unchanged_source_reuses_build(self, tmp_path):
        source = tmp_path / "steady.pyx"
        source.write_text("def plugin(ctx):\n    return 'same'\n")
        loader = PluginLoader(build_dir=tmp_path / "build")

        first = loader.load("steady", source)
        second = loader.load("steady", source)

        assert first.invoke({}) == second.invoke({}) == "same"
