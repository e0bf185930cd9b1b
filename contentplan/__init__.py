"""Contentplan documents service: versioned video documents with conflict resolution."""
