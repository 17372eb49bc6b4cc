"""
Query registries for the raw SQL, SQLAlchemy Core and ORM access layers.

Each module exposes ``OLTP_QUERIES``, ``OLAP_QUERIES`` and ``WRITE_QUERIES``
under the same names.
"""
