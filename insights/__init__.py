"""
Performance insights service for test-preparation products.
"""
