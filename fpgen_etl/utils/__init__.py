"""Shared utilities: config, logging, run tracking, collaborators"""
