def test_import_package_and_version_smoke():
    import sfengine

    assert isinstance(sfengine.__version__, str)
    assert sfengine.SessionManager is not None
    assert sfengine.shared_cache() is sfengine.shared_cache()


def test_main_module_exposes_main():
    from sfengine import __main__ as entry

    assert callable(entry.main)
