"""
Resources module - Tenant-scoped clubs, events, trainings, ISO clauses,
documents and students.
"""
