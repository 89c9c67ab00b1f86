"""Command-line interface for jobsweep"""
