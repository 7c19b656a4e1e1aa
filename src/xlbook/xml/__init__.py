"""SpreadsheetML part models on top of a byte-preserving XML tree."""
