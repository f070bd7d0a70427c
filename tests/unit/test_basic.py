"""Basic tests to verify project setup."""


def test_import_pool_controller():
    """Test that pool_controller package can be imported."""
    import pool_controller

    assert pool_controller.__version__ == "0.1.0"


def test_import_cli():
    """Test that CLI module can be imported."""
    from pool_controller import cli

    assert cli.app is not None


def test_import_controller():
    """Test that the controller module can be imported."""
    from pool_controller import controller

    assert controller.PoolController is not None


def test_import_models():
    """Test that models module can be imported."""
    from pool_controller import models

    assert models.Node is not None
    assert models.Pool is not None
