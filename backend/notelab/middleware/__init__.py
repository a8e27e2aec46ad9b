"""HTTP middleware and request guards"""
