"""Task log service: a file-backed, lock-protected append log served over HTTP."""
