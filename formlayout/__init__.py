"""Form layout editor engine and tools."""
