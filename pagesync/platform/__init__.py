"""Platform module: cursors, pagination, identity and sources."""
