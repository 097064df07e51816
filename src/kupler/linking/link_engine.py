"""
Link Engine for publishing and consuming modules.

Publishing (link/unlink) makes a module installed in Kupler's install root
available in the package manager's global pool. Consuming (use/unuse)
links a published module into a project, optionally under an alias that
is remembered per project.

Two independent state machines are involved:

- PublishState per module at the global pool: NOT_PUBLISHED <-> PUBLISHED
- UseState per (project, module): UNUSED <-> USED, only from PUBLISHED
"""

import logging
import os
from enum import Enum
from pathlib import Path
from typing import List, Optional, Sequence, Union

from ..config import ConfigSaveError
from ..delegate import PackageManagerDelegate
from ..environment import KuplerEnvironment
from ..manifest import Manifest, PackageDependency
from .alias_store import AliasStore
from .directory_scanner import DirectoryScanner, is_within
from ..results import ErrorKind, OperationResult


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class PublishState(Enum):
    NOT_PUBLISHED = "not_published"
    PUBLISHED = "published"


class UseState(Enum):
    UNUSED = "unused"
    USED = "used"


class LinkEngine:
    """
    Creates and removes global-pool links and project-local links.

    Expected failures come back as OperationResult; only faults the engine
    cannot categorise propagate as exceptions.
    """

    def __init__(
        self,
        environment: KuplerEnvironment,
        manifest: Manifest,
        alias_store: AliasStore,
        delegate: PackageManagerDelegate,
        global_pool: Optional[Path],
        scanner: Optional[DirectoryScanner] = None,
    ):
        """
        Initialize the link engine.

        Args:
            environment: Install root and package manager of this invocation
            manifest: Parsed package.json of the install root
            alias_store: Per-project alias records
            delegate: Runs package manager commands
            global_pool: Global pool directory, None if it could not be located
            scanner: Directory scanner; built from install root and manifest
                when omitted
        """
        self.environment = environment
        self.manifest = manifest
        self.alias_store = alias_store
        self.delegate = delegate
        self.global_pool = Path(global_pool) if global_pool is not None else None
        self.scanner = scanner or DirectoryScanner(
            environment.install_root, manifest.names
        )

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def linked_modules(self) -> List[str]:
        """Modules currently published by Kupler, in pool order."""
        if self.global_pool is None:
            return []
        return self.scanner.scan(self.global_pool).linked_names()

    def publish_state(self, module_name: str) -> PublishState:
        if module_name in self.linked_modules():
            return PublishState.PUBLISHED
        return PublishState.NOT_PUBLISHED

    def use_state(self, project_dir: PathLike, module_name: str) -> UseState:
        """
        Whether ``module_name`` is linked into ``project_dir``.

        A module is used when the project's link for it (under its stored
        alias, or its own name) resolves to the published pool entry.
        """
        if self.global_pool is None:
            return UseState.UNUSED

        alias_name = self.alias_store.get(project_dir, module_name) or module_name
        link_path = Path(project_dir) / "node_modules" / alias_name
        pool_entry = self.global_pool / module_name

        if not link_path.is_symlink() or not pool_entry.exists():
            return UseState.UNUSED
        if os.path.realpath(link_path) != os.path.realpath(pool_entry):
            return UseState.UNUSED
        return UseState.USED

    # ------------------------------------------------------------------
    # Publish: link / unlink
    # ------------------------------------------------------------------

    def link(
        self, module_name: Optional[str], passthrough_args: Sequence[str] = ()
    ) -> OperationResult:
        """Publish an installed module to the global pool."""
        return self._publish("link", module_name, passthrough_args)

    def unlink(
        self, module_name: Optional[str], passthrough_args: Sequence[str] = ()
    ) -> OperationResult:
        """Withdraw a published module from the global pool."""
        return self._publish("unlink", module_name, passthrough_args)

    def _publish(
        self,
        command: str,
        module_name: Optional[str],
        passthrough_args: Sequence[str],
    ) -> OperationResult:
        if not module_name:
            return OperationResult.fail(
                ErrorKind.MODULE_UNDEFINED,
                f"cannot `{command}` using package name of undefined.",
            )

        warnings = self._missing_warnings(module_name)

        if not self.environment.is_installed(module_name):
            if self.manifest.declares(module_name):
                warning = (
                    f"package.json includes `{module_name}` but it is not "
                    "installed in node_modules."
                )
                logger.warning(warning)
                warnings.insert(0, warning)
            return OperationResult.fail(
                ErrorKind.MODULE_NOT_INSTALLED,
                f"package `{module_name}` is not installed.",
                warnings=warnings,
            )

        source_path = self.environment.module_path(module_name)

        # The package manager would link an alias install to its alias
        # target, so alias installs are linked by hand.
        dependency = self.manifest.get(module_name)
        if dependency is not None and dependency.is_alias_install:
            if command == "link":
                result = self._link_alias_install(dependency, source_path)
            else:
                result = self._unlink_alias_install(module_name)
            result.warnings[:0] = warnings
            return result

        result = self.delegate.run(command, list(passthrough_args), source_path)
        result.warnings[:0] = warnings
        if result.success:
            past = "linked" if command == "link" else "unlinked"
            result.message = f'{past} "{module_name}"'
        return result

    def _link_alias_install(
        self, dependency: PackageDependency, source_path: Path
    ) -> OperationResult:
        if self.global_pool is None:
            return self._pool_unavailable("link")

        module_name = dependency.name
        link_path = self.global_pool / module_name
        warnings: List[str] = []

        try:
            entry = self.scanner.classify(module_name, link_path)
            if link_path.is_symlink() and entry.is_missing:
                link_path.unlink()
                warnings.append(
                    f"replaced dangling global link `{link_path}` -> "
                    f"`{entry.target_path}`"
                )
                logger.info(f"Removed dangling global link {link_path}")

            link_path.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(source_path, link_path, target_is_directory=True)
        except OSError as e:
            logger.error(f"Failed to link {source_path} -> {link_path}: {e}")
            return OperationResult.fail(
                ErrorKind.FILESYSTEM_ERROR,
                f"failed to link `{module_name}` into {self.global_pool}: {e}",
                error=e,
                warnings=warnings,
            )

        logger.info(
            f"Linked {module_name} (alias of {dependency.alias_target}@"
            f"{dependency.alias_version or 'latest'}) at {link_path}"
        )
        return OperationResult.ok(f'linked "{module_name}"', warnings=warnings)

    def _unlink_alias_install(self, module_name: str) -> OperationResult:
        if self.global_pool is None:
            return self._pool_unavailable("unlink")

        link_path = self.global_pool / module_name

        # Only links pointing into the install root belong to kupler
        if link_path.is_symlink():
            entry = self.scanner.classify(module_name, link_path)
            if not is_within(entry.target_path, self.scanner.install_root):
                logger.warning(
                    f"Not removing {link_path}: it points to {entry.target_path}"
                )
                return OperationResult.fail(
                    ErrorKind.FILESYSTEM_ERROR,
                    f"refusing to unlink `{module_name}`: `{link_path}` points to "
                    f"`{entry.target_path}`, which is outside kupler.",
                )

        try:
            link_path.unlink()
        except OSError as e:
            logger.error(f"Failed to remove global link {link_path}: {e}")
            return OperationResult.fail(
                ErrorKind.FILESYSTEM_ERROR,
                f"failed to unlink `{module_name}` from {self.global_pool}: {e}",
                error=e,
            )

        logger.info(f"Removed global link {link_path}")
        return OperationResult.ok(f'unlinked "{module_name}"')

    def _missing_warnings(self, module_name: str) -> List[str]:
        """Warn about a dangling pool link that should point into the install root."""
        if self.global_pool is None:
            return []

        entry = self.scanner.classify(module_name, self.global_pool / module_name)
        if not entry.is_missing:
            return []

        warning = (
            f"global link for `{module_name}` points to `{entry.target_path}`, "
            "which no longer exists."
        )
        logger.warning(warning)
        return [warning]

    # ------------------------------------------------------------------
    # Consume: use / unuse
    # ------------------------------------------------------------------

    def use(
        self,
        module_name: Optional[str],
        alias_name: Optional[str] = None,
        project_dir: Optional[PathLike] = None,
        passthrough_args: Sequence[str] = (),
    ) -> OperationResult:
        """
        Link a published module into a project.

        The alias in effect is the explicit ``alias_name``, else the one
        stored for this project. With an alias the link is made by hand and
        recorded; without one the package manager links it under its own
        name.
        """
        project = Path(project_dir) if project_dir is not None else Path.cwd()
        failure = self._check_consume_guards("use", module_name, project)
        if failure is not None:
            return failure

        stored_alias = self.alias_store.get(project, module_name)
        effective_alias = alias_name or stored_alias

        if effective_alias is None:
            result = self.delegate.run(
                "link", [module_name, *passthrough_args], project
            )
            if result.success:
                result.message = f'used "{module_name}"'
            return result

        source_path = Path(os.path.realpath(self.global_pool / module_name))
        node_modules = project / "node_modules"
        link_path = node_modules / effective_alias

        try:
            link_path.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(source_path, link_path, target_is_directory=True)
        except OSError as e:
            logger.error(f"Failed to link {source_path} -> {link_path}: {e}")
            return OperationResult.fail(
                ErrorKind.FILESYSTEM_ERROR,
                f"failed to use `{module_name}` as `{effective_alias}`: {e}",
                error=e,
            )

        try:
            self.alias_store.set(project, module_name, effective_alias)
        except ConfigSaveError as e:
            logger.error(f"Failed to record alias, removing {link_path}: {e}")
            try:
                link_path.unlink()
            except OSError as unlink_error:
                logger.error(f"Failed to remove {link_path}: {unlink_error}")
            return self._record_not_saved("use", module_name, e)

        warnings: List[str] = []
        if stored_alias and stored_alias != effective_alias:
            previous_link = node_modules / stored_alias
            if previous_link.is_symlink():
                try:
                    previous_link.unlink()
                    logger.info(f"Removed superseded alias link {previous_link}")
                except OSError as e:
                    warnings.append(
                        f"could not remove previous alias link `{previous_link}`: {e}"
                    )

        logger.info(f"Using {module_name} as {effective_alias} in {project}")

        return OperationResult.ok(
            f'used "{module_name}" as "{effective_alias}"', warnings=warnings
        )

    def unuse(
        self,
        module_name: Optional[str],
        alias_name: Optional[str] = None,
        project_dir: Optional[PathLike] = None,
        passthrough_args: Sequence[str] = (),
    ) -> OperationResult:
        """Remove a module's project link and its alias record, if any."""
        project = Path(project_dir) if project_dir is not None else Path.cwd()
        failure = self._check_consume_guards("unuse", module_name, project)
        if failure is not None:
            return failure

        stored_alias = self.alias_store.get(project, module_name)
        effective_alias = alias_name or stored_alias

        if effective_alias is None:
            result = self.delegate.run(
                "unlink", [module_name, *passthrough_args], project
            )
            if result.success:
                result.message = f'unused "{module_name}"'
            return result

        link_path = project / "node_modules" / effective_alias
        owns_record = stored_alias is not None and stored_alias == effective_alias

        # The record goes first; a vanished link then leaves nothing stale
        if owns_record:
            try:
                self.alias_store.remove(project, module_name)
            except ConfigSaveError as e:
                logger.error(f"Failed to drop alias record for {module_name}: {e}")
                return self._record_not_saved("unuse", module_name, e)

        try:
            link_path.unlink()
        except FileNotFoundError as e:
            return OperationResult.fail(
                ErrorKind.FILESYSTEM_ERROR,
                f"failed to unuse `{module_name}`: `{link_path}` does not exist.",
                error=e,
            )
        except OSError as e:
            logger.error(f"Failed to remove {link_path}: {e}")
            if owns_record:
                self._restore_record(project, module_name, effective_alias)
            return OperationResult.fail(
                ErrorKind.FILESYSTEM_ERROR,
                f"failed to unuse `{module_name}` as `{effective_alias}`: {e}",
                error=e,
            )

        logger.info(f"Removed {link_path}")

        return OperationResult.ok(f'unused "{module_name}" as "{effective_alias}"')

    def _check_consume_guards(
        self, command: str, module_name: Optional[str], project: Path
    ) -> Optional[OperationResult]:
        if not module_name:
            return OperationResult.fail(
                ErrorKind.MODULE_UNDEFINED,
                f"cannot `{command}` using package name of undefined.",
            )

        if os.path.realpath(project) == os.path.realpath(
            self.environment.install_root
        ):
            return OperationResult.fail(
                ErrorKind.SELF_OPERATION_PROHIBITED,
                f"running `{command}` within kupler is prohibited. Did you mean "
                f"to run {command} in another project/directory?",
            )

        if self.global_pool is None:
            return self._pool_unavailable(command)

        if module_name not in self.linked_modules():
            return OperationResult.fail(
                ErrorKind.NOT_LINKED,
                f"command `{command}` failed, package `{module_name}` is not "
                "linked in kupler.",
            )

        return None

    def _restore_record(self, project: Path, module_name: str, alias_name: str):
        try:
            self.alias_store.set(project, module_name, alias_name)
        except ConfigSaveError as e:
            logger.error(f"Failed to restore alias record for {module_name}: {e}")

    def _record_not_saved(
        self, command: str, module_name: str, error: ConfigSaveError
    ) -> OperationResult:
        return OperationResult.fail(
            ErrorKind.FILESYSTEM_ERROR,
            f"cannot `{command}` `{module_name}`: the alias record could not be "
            f"saved ({error}). Nothing was changed.",
            error=error,
        )

    def _pool_unavailable(self, command: str) -> OperationResult:
        return OperationResult.fail(
            ErrorKind.POOL_UNAVAILABLE,
            f"cannot `{command}`: failed to locate the global module directory.",
        )
