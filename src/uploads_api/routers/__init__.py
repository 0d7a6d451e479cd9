"""HTTP routers: uploads, image retrieval/deletion and health."""
