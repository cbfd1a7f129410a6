"""Middleware for DocuChat API"""
