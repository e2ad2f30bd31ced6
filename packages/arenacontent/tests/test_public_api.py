def test_api_exports_exist():
    from arenacontent.core.api import (
        ArenaSource,
        ContentResolver,
        ContentService,
        Settings,
        VersionStore,
        build_tree,
        extract_archive,
        rewrite_artifact_url,
    )

    assert ArenaSource is not None
    assert ContentService is not None
    assert Settings is not None
    assert callable(build_tree)
    assert callable(extract_archive)
    assert callable(rewrite_artifact_url)
    assert VersionStore is not None
    assert ContentResolver is not None


def test_api_all_is_importable():
    import arenacontent.core.api as api

    for name in api.__all__:
        assert hasattr(api, name), name


def test_no_ambiguous_top_level_modules_exist():
    """arenacontent is a namespace: only the core and server packages live under it."""
    import importlib.util

    assert importlib.util.find_spec("arenacontent.api") is None
    assert importlib.util.find_spec("arenacontent.cli") is None
