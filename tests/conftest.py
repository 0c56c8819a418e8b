# tests/conftest.py
import os

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings")
# testlar doim sqlite da
os.environ["POSTGRES_DB"] = ""
os.environ.setdefault("TG_BOT_TOKEN", "123456:TEST")

django.setup()


@pytest.fixture(scope="session", autouse=True)
def django_test_db():
    from django.test.utils import (
        setup_databases,
        setup_test_environment,
        teardown_databases,
        teardown_test_environment,
    )

    setup_test_environment()
    old_config = setup_databases(verbosity=0, interactive=False)
    yield
    teardown_databases(old_config, verbosity=0)
    teardown_test_environment()
