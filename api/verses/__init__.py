"""
Bhagavad Gita verse records: model, query layer, CRUD service and HTTP routes.
"""
