"""HTTP routers: per-entity CRUD, schema management and service status."""
