"""
CRUD core service layer

Every module in this package bundles the commands (create, update and
delete operations) and the queries of one entity type. Commands commit
their session and invalidate the cached entries of the entity types they
modify, while queries may be served from the cache. All functions return
pydantic schemas instead of database models, so that results can be
cached and sent to clients directly.
"""
