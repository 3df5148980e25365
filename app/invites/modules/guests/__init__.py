"""
Guests and RSVP collection.

Guests RSVP either by manual entry (creating their own guest row) or by
looking up a guest the couple pre-registered, depending on the wedding's
rsvp_mode.
"""
