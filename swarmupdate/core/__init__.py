"""Pure helpers used by the update fetcher."""
