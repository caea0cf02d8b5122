# test_imports.py
import importlib

import pytest

MODULES = [
    "salesgrow_ai",
    "salesgrow_ai.cli.main",
    "salesgrow_ai.coach.engine",
    "salesgrow_ai.config.loader",
    "salesgrow_ai.core.gateway",
    "salesgrow_ai.logging_config",
    "salesgrow_ai.providers",
    "salesgrow_ai.storage.repository",
    "salesgrow_ai.storage.store",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports(name):
    assert importlib.import_module(name) is not None


def test_public_gateway_api():
    from salesgrow_ai.core.gateway import ai_gateway, check_quota, clear_cache, get_cache_stats
    from salesgrow_ai.coach.engine import generate_feedback, process_user_message, start_coach_session

    for function in (ai_gateway, check_quota, clear_cache, get_cache_stats,
                     start_coach_session, process_user_message, generate_feedback):
        assert callable(function)
