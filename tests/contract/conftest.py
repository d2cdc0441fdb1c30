"""Shared fixtures for contract tests.

Common fixtures (app, client, dev_client, monitor, clock, admin_headers)
come from tests/conftest.py. The failing routes below stand in for the
recipe, storage and upload endpoints that report errors to the classifier.
"""

import pytest
from fastapi import FastAPI, HTTPException

from recipe_server.lib.errors import StorageError, UploadLimitError


def add_failure_routes(app: FastAPI) -> FastAPI:
    """Register endpoints that raise each kind of error."""

    @app.get('/api/test/storage-conflict')
    async def storage_conflict():
        raise StorageError('ConditionalCheckFailedException', 'The conditional request failed', 400, 'REQ1')

    @app.get('/api/test/throttled')
    async def throttled():
        raise StorageError('ThrottlingException', 'Rate of requests exceeds the allowed throughput')

    @app.get('/api/test/crash')
    async def crash():
        raise RuntimeError('ingredient scaler crashed')

    @app.post('/api/test/upload')
    async def upload():
        raise UploadLimitError('LIMIT_FILE_SIZE', 'File too large')

    @app.get('/api/test/servings')
    async def servings(count: int):
        return {'count': count}

    @app.get('/api/test/recipes/{recipe_id}')
    async def get_recipe(recipe_id: str):
        raise HTTPException(status_code=404, detail=f'Recipe {recipe_id} does not exist')

    return app


@pytest.fixture
def app(app):
    return add_failure_routes(app)


@pytest.fixture
def dev_app(dev_app):
    return add_failure_routes(dev_app)
