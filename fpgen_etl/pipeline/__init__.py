"""Pipeline stages"""
