"""
Document Store - Embedded schema-driven document database

An in-process document store with typed tables, secondary indexes
(B+Tree and hashed), a composable query pipeline and JSON snapshots.
"""

__version__ = "0.1.0"
