"""Levelled structured logging and a demonstration command."""