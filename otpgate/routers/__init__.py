"""API Routers"""
