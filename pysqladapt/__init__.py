"""
pysqladapt: Dialect adapter and schema introspection for relational databases.

This library renders Python values and clause directives as dialect-correct SQL fragments, and reverse-engineers
the tables, columns, indexes and foreign keys of a live database into immutable descriptors.
"""

__version__ = "0.1.0"
__license__ = "MIT"
__status__ = "Beta"
