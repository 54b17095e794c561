"""
Tests for the Extension System.

This test suite covers:
1. Registry (duplicates, lookups, sealing)
2. Dependency resolution (ordering, pruning, cycles)
3. Trigger index matching and registration-order tie-breaks
4. Activation engine (idempotence, failures, isolation)
"""

import pytest

from lazyext.plugin.engine import ActivationEngine
from lazyext.plugin.extension import (
    CyclicDependencyError,
    DuplicateNameError,
    Extension,
    ExtensionError,
    ExtensionState,
    InstallError,
    NotFoundError,
    RegistryError,
    SetupError,
)
from lazyext.plugin.registry import Registry
from lazyext.plugin.resolver import DependencyResolver
from lazyext.plugin.triggers import (
    Command,
    FileType,
    KeySequence,
    LifecycleEvent,
    TriggerIndex,
)


def make_registry(*extensions: Extension, seal: bool = True) -> Registry:
    registry = Registry()
    for extension in extensions:
        registry.register(extension)
    if seal:
        registry.seal()
    return registry


def recorder(calls: list, name: str):
    def setup():
        calls.append(name)

    return setup


class FailingInstaller:
    """Installer that fails for the given names and counts calls."""

    def __init__(self, failing: set[str], exc: Exception | None = None):
        self.failing = failing
        self.exc = exc
        self.calls: list[str] = []

    def ensure_installed(self, extension: Extension) -> None:
        self.calls.append(extension.name)
        if extension.name in self.failing:
            if self.exc is not None:
                raise self.exc
            raise InstallError(extension.name, "network unreachable")


class TestRegistry:
    """Test extension registration."""

    def test_register_and_get(self):
        """Should return registered extensions by name."""
        ext = Extension("finder")
        registry = make_registry(ext)

        assert registry.get("finder") is ext
        assert "finder" in registry
        assert len(registry) == 1

    def test_duplicate_name(self):
        """Should reject a second extension with the same name."""
        registry = make_registry(Extension("finder"), seal=False)

        with pytest.raises(DuplicateNameError, match="already registered"):
            registry.register(Extension("finder"))

    def test_get_missing(self):
        """Should raise NotFoundError for unknown names."""
        registry = make_registry()

        with pytest.raises(NotFoundError, match="not found"):
            registry.get("nope")

    def test_registration_order_preserved(self):
        """Iteration should follow registration order."""
        registry = make_registry(Extension("c"), Extension("a"), Extension("b"))

        assert registry.names() == ["c", "a", "b"]
        assert registry.positions() == {"c": 0, "a": 1, "b": 2}

    def test_seal_rejects_missing_dependency(self):
        """Sealing should fail when a dependency is not registered."""
        registry = make_registry(Extension("lsp", dependencies=["finder"]), seal=False)

        with pytest.raises(NotFoundError, match="lsp depends on finder") as exc_info:
            registry.seal()
        assert exc_info.value.required_by == "lsp"

    def test_seal_rejects_cycle(self):
        """Sealing should fail on a cyclic dependency graph."""
        registry = make_registry(
            Extension("a", dependencies=["b"]),
            Extension("b", dependencies=["a"]),
            seal=False,
        )

        with pytest.raises(CyclicDependencyError):
            registry.seal()

    def test_register_after_seal(self):
        """Registration should be closed once sealed."""
        registry = make_registry(Extension("a"))

        with pytest.raises(RegistryError, match="sealed"):
            registry.register(Extension("b"))

    def test_self_dependency_rejected(self):
        """An extension cannot depend on itself."""
        with pytest.raises(CyclicDependencyError):
            Extension("a", dependencies=["a"])


class TestDependencyResolver:
    """Test dependency ordering."""

    def test_simple_chain(self):
        """Dependencies come before the target, target last."""
        registry = make_registry(
            Extension("plenary"),
            Extension("telescope", dependencies=["plenary"]),
        )

        assert DependencyResolver(registry).resolve("telescope") == [
            "plenary",
            "telescope",
        ]

    def test_diamond_has_no_duplicates(self):
        """Shared dependencies appear once, before every dependent."""
        registry = make_registry(
            Extension("a"),
            Extension("b", dependencies=["a"]),
            Extension("c", dependencies=["a"]),
            Extension("d", dependencies=["b", "c"]),
        )

        order = DependencyResolver(registry).resolve("d")

        assert order == ["a", "b", "c", "d"]
        assert len(order) == len(set(order))

    def test_active_dependencies_pruned(self):
        """Already-active extensions are left out of the order."""
        registry = make_registry(
            Extension("a"),
            Extension("b", dependencies=["a"]),
        )
        ActivationEngine(registry).activate("a")

        assert DependencyResolver(registry).resolve("b") == ["b"]

    def test_active_target_resolves_empty(self):
        """Resolving an active target yields nothing to do."""
        registry = make_registry(Extension("a"))
        ActivationEngine(registry).activate("a")

        assert DependencyResolver(registry).resolve("a") == []

    def test_cycle_names_the_path(self):
        """Cycles are reported with the full path."""
        registry = make_registry(
            Extension("a", dependencies=["b"]),
            Extension("b", dependencies=["c"]),
            Extension("c", dependencies=["a"]),
            seal=False,
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            DependencyResolver(registry).resolve("a")

        assert exc_info.value.cycle == ["a", "b", "c", "a"]
        assert "a -> b -> c -> a" in str(exc_info.value)

    def test_missing_dependency(self):
        """Unregistered dependencies are reported with their dependent."""
        registry = make_registry(Extension("b", dependencies=["a"]), seal=False)

        with pytest.raises(NotFoundError, match="b depends on a"):
            DependencyResolver(registry).resolve("b")


class TestTriggerIndex:
    """Test trigger matching."""

    def test_command_exact_match(self):
        """Commands match by exact name."""
        index = TriggerIndex.build([Extension("finder", triggers=[Command("find")])])

        assert index.lookup(Command("find")) == ["finder"]
        assert index.lookup(Command("findx")) == []

    def test_lifecycle_event_exact_match(self):
        """Lifecycle events match by exact name."""
        index = TriggerIndex.build(
            [Extension("autopairs", triggers=[LifecycleEvent("InsertEnter")])]
        )

        assert index.lookup(LifecycleEvent("InsertEnter")) == ["autopairs"]
        assert index.lookup(LifecycleEvent("InsertLeave")) == []

    def test_key_sequence_needs_mode_and_keys(self):
        """Key sequences match on mode and keys; desc is ignored."""
        index = TriggerIndex.build(
            [
                Extension(
                    "formatter",
                    triggers=[KeySequence("n", "<leader>f", desc="Format buffer")],
                )
            ]
        )

        assert index.lookup(KeySequence("n", "<leader>f")) == ["formatter"]
        assert index.lookup(KeySequence("v", "<leader>f")) == []
        assert index.lookup(KeySequence("n", "<leader>g")) == []

    def test_filetype_glob_and_literal(self):
        """Filetype patterns match globs and their literal form."""
        index = TriggerIndex.build(
            [
                Extension("go", triggers=[FileType("*.go")]),
                Extension("py", triggers=[FileType("python")]),
            ]
        )

        assert index.lookup(FileType("*.go")) == ["go"]
        assert index.lookup(FileType("main.go")) == ["go"]
        assert index.lookup(FileType("src/pkg/main.go")) == ["go"]
        assert index.lookup(FileType("main.rs")) == []
        assert index.lookup(FileType("python")) == ["py"]

    def test_shared_trigger_registration_order(self):
        """Shared triggers return every match in registration order."""
        index = TriggerIndex.build(
            [
                Extension("b", triggers=[FileType("main.*")]),
                Extension("a", triggers=[FileType("*.go")]),
                Extension("c", triggers=[FileType("*.go"), FileType("main.go")]),
            ]
        )

        assert index.lookup(FileType("main.go")) == ["b", "a", "c"]

    def test_bind_after_build(self):
        """New bindings route to existing extensions."""
        index = TriggerIndex.build([Extension("a"), Extension("b")])

        index.bind(Command("late"), "b")
        index.bind(Command("late"), "a")

        assert index.lookup(Command("late")) == ["a", "b"]
        assert index.triggers_for("a") == [Command("late")]

    def test_bind_unknown_extension(self):
        """Binding to an unknown name fails."""
        index = TriggerIndex.build([Extension("a")])

        with pytest.raises(NotFoundError):
            index.bind(Command("x"), "ghost")

    def test_bind_rejects_non_trigger(self):
        """Only trigger descriptors can be bound."""
        index = TriggerIndex.build([Extension("a")])

        with pytest.raises(TypeError):
            index.bind("cmd:x", "a")


class TestActivationEngine:
    """Test activation semantics."""

    def test_activate_is_idempotent(self):
        """Activating twice runs setup once."""
        calls = []
        registry = make_registry(Extension("a", setup=recorder(calls, "a")))
        engine = ActivationEngine(registry)

        engine.activate("a")
        engine.activate("a")

        assert calls == ["a"]
        assert engine.state("a") is ExtensionState.ACTIVE

    def test_dependencies_set_up_first(self):
        """Dependencies are active before the dependent's setup."""
        calls = []
        registry = make_registry(
            Extension("plenary", setup=recorder(calls, "plenary")),
            Extension("telescope", dependencies=["plenary"], setup=recorder(calls, "telescope")),
        )

        ActivationEngine(registry).activate("telescope")

        assert calls == ["plenary", "telescope"]

    def test_shared_dependency_set_up_once(self):
        """A dependency shared by two extensions runs setup once."""
        calls = []
        registry = make_registry(
            Extension("plenary", setup=recorder(calls, "plenary")),
            Extension("neogit", dependencies=["plenary"], setup=recorder(calls, "neogit")),
            Extension("telescope", dependencies=["plenary"], setup=recorder(calls, "telescope")),
        )
        engine = ActivationEngine(registry)

        engine.activate("neogit")
        engine.activate("telescope")

        assert calls == ["plenary", "neogit", "telescope"]

    def test_setup_failure_marks_failed(self):
        """A failing setup leaves the extension FAILED with a SetupError."""

        def broken():
            raise ValueError("bad option")

        registry = make_registry(Extension("a", setup=broken))
        engine = ActivationEngine(registry)

        with pytest.raises(SetupError, match="setup failed for extension a") as exc_info:
            engine.activate("a")

        assert exc_info.value.name == "a"
        assert isinstance(exc_info.value.__cause__, ValueError)
        assert engine.state("a") is ExtensionState.FAILED
        assert registry.get("a").error is exc_info.value

    def test_failed_extension_is_not_retried(self):
        """A FAILED extension re-raises without running setup again."""
        attempts = []

        def broken():
            attempts.append(1)
            raise RuntimeError("boom")

        registry = make_registry(Extension("a", setup=broken))
        engine = ActivationEngine(registry)

        with pytest.raises(SetupError):
            engine.activate("a")
        with pytest.raises(SetupError):
            engine.activate("a")

        assert len(attempts) == 1

    def test_failure_does_not_affect_unrelated(self):
        """An unrelated extension still activates after a failure."""
        calls = []

        def broken():
            raise RuntimeError("boom")

        registry = make_registry(
            Extension("a", setup=broken),
            Extension("b", setup=recorder(calls, "b")),
        )
        engine = ActivationEngine(registry)

        errors = engine.activate_all(["a", "b"])

        assert [type(e) for e in errors] == [SetupError]
        assert calls == ["b"]
        assert engine.state("b") is ExtensionState.ACTIVE
        assert engine.failed_extensions() == ["a"]
        assert engine.active_extensions() == ["b"]

    def test_install_failure(self):
        """An installer failure marks FAILED and skips setup."""
        calls = []
        installer = FailingInstaller({"a"})
        registry = make_registry(Extension("a", setup=recorder(calls, "a")))
        engine = ActivationEngine(registry, installer)

        with pytest.raises(InstallError, match="network unreachable"):
            engine.activate("a")
        with pytest.raises(InstallError):
            engine.activate("a")

        assert calls == []
        assert installer.calls == ["a"]
        assert engine.state("a") is ExtensionState.FAILED

    def test_unexpected_installer_exception_wrapped(self):
        """Non-InstallError installer exceptions surface as InstallError."""
        installer = FailingInstaller({"a"}, exc=OSError("disk full"))
        registry = make_registry(Extension("a"))

        with pytest.raises(InstallError, match="disk full"):
            ActivationEngine(registry, installer).activate("a")

    def test_dependency_failure_fails_dependent(self):
        """A failing dependency fails the outer activation too."""
        calls = []

        def broken():
            raise RuntimeError("boom")

        registry = make_registry(
            Extension("finder", setup=broken),
            Extension("lsp", dependencies=["finder"], setup=recorder(calls, "lsp")),
        )
        engine = ActivationEngine(registry)

        with pytest.raises(SetupError) as exc_info:
            engine.activate("lsp")

        assert exc_info.value.name == "finder"
        assert calls == []
        assert engine.state("finder") is ExtensionState.FAILED
        assert engine.state("lsp") is ExtensionState.FAILED

    def test_cycle_runs_no_setup(self):
        """On an unsealed cyclic graph, no setup in the cycle runs."""
        calls = []
        registry = make_registry(
            Extension("a", dependencies=["b"], setup=recorder(calls, "a")),
            Extension("b", dependencies=["a"], setup=recorder(calls, "b")),
            seal=False,
        )
        engine = ActivationEngine(registry)

        with pytest.raises(CyclicDependencyError):
            engine.activate("a")

        assert calls == []
        assert engine.state("a") is ExtensionState.FAILED
        assert engine.state("b") is ExtensionState.REGISTERED

    def test_reentrant_activation_fails_setup(self):
        """A setup that re-activates itself fails instead of recursing."""
        engine = None

        def reenter():
            engine.activate("a")

        registry = make_registry(Extension("a", setup=reenter))
        engine = ActivationEngine(registry)

        with pytest.raises(SetupError, match="CyclicDependencyError"):
            engine.activate("a")

    def test_startup_activates_eager_only(self):
        """Startup runs trigger-less, non-lazy extensions in order."""
        calls = []
        registry = make_registry(
            Extension("statusline", setup=recorder(calls, "statusline")),
            Extension("finder", triggers=[Command("find")], setup=recorder(calls, "finder")),
            Extension("plenary", lazy=True, setup=recorder(calls, "plenary")),
            Extension("theme", setup=recorder(calls, "theme")),
        )

        errors = ActivationEngine(registry).startup()

        assert errors == []
        assert calls == ["statusline", "theme"]

    def test_state_transitions_are_monotonic(self):
        """States cannot move backwards or leave FAILED."""
        ext = Extension("a")
        ext.advance(ExtensionState.INSTALLING)
        ext.advance(ExtensionState.SETTING_UP)
        ext.advance(ExtensionState.ACTIVE)

        with pytest.raises(ExtensionError, match="Invalid state transition"):
            ext.advance(ExtensionState.REGISTERED)

        failed = Extension("b")
        failed.advance(ExtensionState.INSTALLING)
        failed.fail(InstallError("b", "offline"))
        with pytest.raises(ExtensionError):
            failed.advance(ExtensionState.INSTALLING)

    def test_is_active_unknown_name(self):
        """Unknown names are simply not active."""
        engine = ActivationEngine(make_registry())

        assert engine.is_active("ghost") is False


class TestEditorScenario:
    """Theme, finder and lsp wired up as an editor config would."""

    def test_lazy_activation_scenario(self):
        """Only the theme starts eagerly; a Go file pulls in finder, then lsp."""
        calls = []
        registry = make_registry(
            Extension("theme", setup=recorder(calls, "theme")),
            Extension("finder", triggers=[Command("find")], setup=recorder(calls, "finder")),
            Extension(
                "lsp",
                triggers=[FileType("*.go")],
                dependencies=["finder"],
                setup=recorder(calls, "lsp"),
            ),
        )
        index = TriggerIndex.build(registry)
        engine = ActivationEngine(registry)

        engine.startup()
        assert calls == ["theme"]

        for _ in range(2):
            engine.activate_all(index.lookup(FileType("*.go")))

        assert calls == ["theme", "finder", "lsp"]
        assert engine.active_extensions() == ["theme", "finder", "lsp"]
