"""Discovery of untracked fandoms from raw content signal."""
