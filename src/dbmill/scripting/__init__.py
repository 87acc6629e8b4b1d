"""Scripting a database into a folder of definition scripts."""
