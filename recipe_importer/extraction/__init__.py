"""Plain-text extraction from the recipe file types Drive can hold."""
