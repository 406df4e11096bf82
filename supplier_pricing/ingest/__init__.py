"""Workbook reading and sheet selection."""
