"""
Search indexing and query scoring package.

This package turns documents into view rows and ranks query matches:
- fields: Field extraction over nested paths and arrays
- analyzers: Tokenizers and filters shared by indexing and querying
- mapping: The pure mapping function handed to the view engine
- identity: Content-addressed names for persisted indexes
- scoring: Candidate accumulation, minimum-should-match, TF-IDF dismax scoring
- highlight: Marking matched terms in field text
"""
