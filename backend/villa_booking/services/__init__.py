"""
Application services: the booking lifecycle, availability, the payment window
and proof workflow, and the calendar cache.
"""
