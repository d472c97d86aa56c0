"""Pure domain rules: names, output types, references, and errors."""
