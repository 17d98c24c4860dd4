"""Operational scripts: account import and the overdue watcher"""
