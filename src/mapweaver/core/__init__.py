"""Document core: normalized store, structural edits, selection and history."""
