"""Graph compiler: parsing, migration, AST building and sketch emission."""
