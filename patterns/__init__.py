"""Reusable patterns shared by storefront verticals.

Each module is a self-contained building block a vertical adapts to its
domain: pure-function rules, whole-record repositories and environment
driven domain configuration.
"""
