"""Source parsing backed by tree-sitter."""
