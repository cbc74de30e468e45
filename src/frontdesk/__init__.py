"""Front-desk tool-call core.

This package serves the tool calls of a conversational front-office agent:
it routes each named call to a handler, runs it against a FHIR
clinical-records API (or the clinic's in-process schedule) and returns a
response envelope tagged with the call's correlation id.
"""
