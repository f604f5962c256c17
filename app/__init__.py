"""
FastAPI Application Package

This package contains the main FastAPI application and routing logic.
It serves the token snapshot query endpoint and the real-time WebSocket feed.
"""
