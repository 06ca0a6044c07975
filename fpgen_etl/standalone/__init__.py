"""Standalone helper scripts"""
