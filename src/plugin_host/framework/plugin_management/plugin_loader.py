"""
Plugin Loader Module

Resolves a plugin source location to a loaded module and builds its PluginDescriptor.
Every load evicts the previously loaded copy of the same source and compiles the
current on-disk content, so a reload never observes a stale module.
"""

import hashlib
import importlib
import importlib.machinery
import importlib.util
import logging
import re
import sys
import tempfile
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Optional, Union

import yaml

from .plugin_descriptor import PluginDescriptor
from ...infrastructure.exceptions import LoadError

logger = logging.getLogger(__name__)

# Name of the module attribute holding the plugin's entry point
PLUGIN_EXPORT = "plugin"

# Source formats that need a compile step before they can be imported
COMPILED_SUFFIXES = frozenset({".pyx"})

# Informational metadata shipped next to a package plugin's __init__.py
METADATA_FILES = ("plugin.yaml", "plugin.yml", "info.json")

MODULE_PREFIX = "_plugin_host_plugin"

# Separates a compiled plugin's module name from the hash of the source it was built from
COMPILED_VERSION_SEPARATOR = "__v"

DEFAULT_BUILD_DIR = Path(tempfile.gettempdir()) / "plugin_host_pyx"

_compile_support_enabled = False


def _install_source_compiler() -> None:
    import pyximport
    pyximport.install(language_level=3, build_dir=str(DEFAULT_BUILD_DIR / "pyxbld"))


def enable_compile_support() -> None:
    """Register the .pyx import hook; once per process."""
    global _compile_support_enabled
    if _compile_support_enabled:
        return

    logger.debug("Registering pyximport for compiled plugin sources")
    _install_source_compiler()
    _compile_support_enabled = True


def is_compile_support_enabled() -> bool:
    return _compile_support_enabled


class SourceOnlyFileLoader(importlib.machinery.SourceFileLoader):
    """SourceFileLoader that always compiles from source and never reads or writes __pycache__."""

    def get_code(self, fullname):
        source_path = self.get_filename(fullname)
        return self.source_to_code(self.get_data(source_path), source_path)


class PluginLoader:
    """Loads plugin modules from source paths, always from current on-disk content."""

    def __init__(self, export_name: str = PLUGIN_EXPORT, build_dir: Optional[Path] = None):
        self.export_name = export_name
        # Compiled sources are staged here under their versioned module names
        self.build_dir = Path(build_dir) if build_dir else DEFAULT_BUILD_DIR

    @staticmethod
    def resolve_path(path: Union[str, Path]) -> Path:
        return Path(path).expanduser().resolve()

    @staticmethod
    def module_name_for(resolved: Path) -> str:
        """Stable, unique module name for a resolved source path."""
        digest = hashlib.sha1(str(resolved).encode("utf-8")).hexdigest()[:12]
        stem = re.sub(r"\W", "_", resolved.stem)
        return f"{MODULE_PREFIX}_{stem}_{digest}"

    def compiled_module_name_for(self, resolved: Path, source: bytes) -> str:
        """Module name for one build of a compiled source; changes whenever the source does."""
        digest = hashlib.sha1(source).hexdigest()[:12]
        return f"{self.module_name_for(resolved)}{COMPILED_VERSION_SEPARATOR}{digest}"

    def evict(self, resolved: Path, keep: Optional[str] = None) -> int:
        """
        Drop any module previously loaded from this path, including package submodules
        and earlier builds of a compiled source. Only names this loader creates are touched.
        """
        base = self.module_name_for(resolved)
        stale = [
            key for key in sys.modules
            if key != keep and (
                key == base
                or key.startswith(base + ".")
                or key.startswith(base + COMPILED_VERSION_SEPARATOR)
            )
        ]
        for key in stale:
            del sys.modules[key]

        if stale:
            logger.debug(f"Evicted {len(stale)} cached module(s) for '{resolved}'")
        return len(stale)

    def load(self, name: str, path: Union[str, Path]) -> PluginDescriptor:
        """
        Load a plugin without any validation.

        Raises:
            LoadError: If the source cannot be found, compiled or executed, or if it
                does not export a callable entry point.
        """
        logger.debug(f"Loading plugin '{name}' from '{path}'")
        resolved = self.resolve_path(path)

        try:
            if resolved.suffix in COMPILED_SUFFIXES:
                module = self._load_compiled(resolved)
            else:
                module = self._load_source(resolved)
        except Exception as e:
            logger.error(
                f"Error loading plugin '{name}' from '{resolved}': {e}",
                extra={"plugin_name": name, "path": str(resolved)}
            )
            raise LoadError(
                f"Error loading plugin '{name}' from '{resolved}': {e}",
                plugin_name=name,
                path=str(resolved),
                cause=e
            ) from e

        entry = getattr(module, self.export_name, None)
        if entry is None or not callable(entry):
            raise LoadError(
                f"Invalid plugin format for plugin '{name}': {type(entry).__name__}",
                plugin_name=name,
                path=str(resolved)
            )

        return self._build_descriptor(name, resolved, module, entry)

    def _load_source(self, resolved: Path) -> ModuleType:
        """Execute a .py file or package directory as a fresh module."""
        if resolved.is_dir():
            origin = resolved / "__init__.py"
            search_locations = [str(resolved)]
            if not origin.is_file():
                raise FileNotFoundError(f"Plugin package has no __init__.py: {resolved}")
        elif resolved.is_file():
            origin = resolved
            search_locations = None
        else:
            raise FileNotFoundError(f"Plugin source not found: {resolved}")

        self.evict(resolved)
        module_name = self.module_name_for(resolved)

        spec = importlib.util.spec_from_file_location(
            module_name,
            origin,
            loader=SourceOnlyFileLoader(module_name, str(origin)),
            submodule_search_locations=search_locations
        )
        if not spec or not spec.loader:
            raise ImportError(f"Cannot create module spec for {origin}")

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(module_name, None)
            raise

        return module

    def _load_compiled(self, resolved: Path) -> ModuleType:
        """
        Import a source that needs a compile step through the pyximport hook.

        Extension modules cannot be re-initialised under a name they were already
        imported as, so each distinct source content is built under its own module
        name. Loading unchanged content again returns the module already built for it.
        """
        if not resolved.is_file():
            raise FileNotFoundError(f"Plugin source not found: {resolved}")

        enable_compile_support()
        source = resolved.read_bytes()
        module_name = self.compiled_module_name_for(resolved, source)
        self.evict(resolved, keep=module_name)
        if module_name in sys.modules:
            return sys.modules[module_name]

        staged = self.build_dir / f"{module_name}{resolved.suffix}"
        if not staged.is_file() or staged.read_bytes() != source:
            self.build_dir.mkdir(parents=True, exist_ok=True)
            staged.write_bytes(source)
        importlib.invalidate_caches()

        # The plugin directory stays importable for cimports of sibling .pxd files
        search_paths = [str(self.build_dir), str(resolved.parent)]
        inserted = [entry for entry in search_paths if entry not in sys.path]
        sys.path[0:0] = inserted
        try:
            return importlib.import_module(module_name)
        finally:
            # Remove from path to avoid conflicts
            for entry in inserted:
                if entry in sys.path:
                    sys.path.remove(entry)

    def _read_metadata_file(self, plugin_dir: Path) -> Dict[str, Any]:
        for file_name in METADATA_FILES:
            candidate = plugin_dir / file_name
            if not candidate.is_file():
                continue
            try:
                with open(candidate, 'r', encoding='utf-8') as f:
                    metadata = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Cannot read plugin metadata {candidate}: {e}")
                return {}
            if not isinstance(metadata, dict):
                logger.warning(f"Invalid metadata format in {candidate}")
                return {}
            return metadata
        return {}

    def _build_descriptor(
        self,
        name: str,
        resolved: Path,
        module: ModuleType,
        entry: Any
    ) -> PluginDescriptor:
        file_metadata = self._read_metadata_file(resolved) if resolved.is_dir() else {}

        def capability(attr: str) -> Optional[Any]:
            # The entry point's own attributes win over module-level ones
            if hasattr(entry, attr):
                return getattr(entry, attr)
            return getattr(module, attr, None)

        def info(attr: str) -> Optional[Any]:
            value = capability(attr)
            return file_metadata.get(attr) if value is None else value

        min_version = capability("min_version")
        validate_arguments = capability("validate_arguments")
        if validate_arguments is not None and not callable(validate_arguments):
            raise LoadError(
                f"Invalid plugin format for plugin '{name}': validate_arguments is not callable",
                plugin_name=name,
                path=str(resolved)
            )

        authors = info("authors") or []
        if isinstance(authors, str):
            authors = [authors]

        version = info("version")
        descriptor = PluginDescriptor(
            name=name,
            source_path=resolved,
            invoke=entry,
            min_host_version=str(min_version) if min_version is not None else None,
            validate_arguments=validate_arguments,
            declared_events=list(info("events") or []),
            authors=list(authors),
            description=info("description") or "",
            version=str(version) if version is not None else None,
            arguments=info("arguments"),
            declared_name=info("name")
        )

        logger.debug(
            f"Plugin loaded: {name}",
            extra={"plugin_name": name, "path": str(resolved), "plugin_version": descriptor.version}
        )
        return descriptor
