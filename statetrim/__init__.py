"""statetrim: bounded compaction of normalized client-side chat stores."""
