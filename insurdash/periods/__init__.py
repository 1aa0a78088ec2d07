"""Period grouping: weekly (year, week) buckets and chronological ordering."""
