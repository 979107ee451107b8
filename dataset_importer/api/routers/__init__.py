"""
FastAPI routers for the dataset import service.
"""
