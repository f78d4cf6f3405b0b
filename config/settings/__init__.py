"""Settings package for the RentZone project.

`base.py` holds the configuration shared across environments; `dev.py`,
`test.py` and `prod.py` extend it with environment specific overrides.
"""
