"""Context access resolution service package."""
