"""
Canonical menu model.

Responsibilities:
- Define the MenuEntry / DaySnapshot shapes every adapter produces.
- Normalize free-form upstream price text into the student price.
"""
