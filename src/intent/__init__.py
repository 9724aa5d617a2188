"""Intent parsing and validation.

The intent layer converts a Hebrew/English natural-language budget question into a
confidence-scored `ParsedIntent`, which the query compiler turns into parameterized SQL.
"""
