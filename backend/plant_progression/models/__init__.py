"""ORM models. Import the submodules so their tables register on Base.metadata."""
