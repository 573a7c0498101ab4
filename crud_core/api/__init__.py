"""
CRUD core REST API

The application object is exported by ``crud_core.api.api``, e.g.:

.. code-block::

    uvicorn crud_core.api.api:api.app
"""
