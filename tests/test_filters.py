import importlib

from code_insight import filters
from code_insight.filters import DEFAULT_FILTER_POLICY, FilterPolicy


def test_skipped_directory_is_exact_match():
    assert DEFAULT_FILTER_POLICY.is_skipped_directory("node_modules")
    assert DEFAULT_FILTER_POLICY.is_skipped_directory(".git")
    # No prefix or glob matching.
    assert not DEFAULT_FILTER_POLICY.is_skipped_directory("node_modules_old")
    # Directory names are case-sensitive.
    assert not DEFAULT_FILTER_POLICY.is_skipped_directory("Node_Modules")


def test_skipped_extension_expects_lowercase_dotted_suffix():
    assert DEFAULT_FILTER_POLICY.is_skipped_file(".png")
    assert DEFAULT_FILTER_POLICY.is_skipped_file(".zip")
    assert not DEFAULT_FILTER_POLICY.is_skipped_file(".py")
    assert not DEFAULT_FILTER_POLICY.is_skipped_file("")


def test_custom_policy_normalizes_extensions():
    policy = FilterPolicy(skip_directory_names={"tmp"}, skip_extensions={"LOG", ".Bak"})

    assert policy.skip_extensions == frozenset({".log", ".bak"})
    assert policy.is_skipped_file(".log")
    assert policy.is_skipped_directory("tmp")
    assert not policy.is_skipped_directory("node_modules")


def test_extended_returns_new_policy():
    extended = DEFAULT_FILTER_POLICY.extended(["generated"], ["lock"])

    assert extended.is_skipped_directory("generated")
    assert extended.is_skipped_file(".lock")
    assert extended.is_skipped_directory("node_modules")
    # The shared default policy is left untouched.
    assert not DEFAULT_FILTER_POLICY.is_skipped_directory("generated")


def test_default_filter_policy_reads_extra_filters_from_env(monkeypatch):
    monkeypatch.setenv("CODE_INSIGHT_EXTRA_SKIP_DIRS", "vendor, target")
    monkeypatch.setenv("CODE_INSIGHT_EXTRA_SKIP_EXTENSIONS", ".min.js,map")

    from code_insight import config as config_module

    monkeypatch.setattr("dotenv.load_dotenv", lambda *args, **kwargs: None)
    importlib.reload(config_module)
    importlib.reload(filters)

    try:
        policy = filters.default_filter_policy()
        assert policy.is_skipped_directory("vendor")
        assert policy.is_skipped_directory("target")
        assert policy.is_skipped_file(".map")
        assert policy.is_skipped_directory("node_modules")
    finally:
        monkeypatch.delenv("CODE_INSIGHT_EXTRA_SKIP_DIRS")
        monkeypatch.delenv("CODE_INSIGHT_EXTRA_SKIP_EXTENSIONS")
        importlib.reload(config_module)
        importlib.reload(filters)
