"""Coworkly - coworking space reservation scheduling."""
