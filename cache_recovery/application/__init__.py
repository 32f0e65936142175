"""
===============================================================================
APPLICATION LAYER
===============================================================================

Use cases only (no shared application services yet). Import them from
`application.usecases`.
===============================================================================
"""
