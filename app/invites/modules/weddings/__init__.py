"""
Weddings module.

A wedding (or birthday) is the tenant record: couple, date, venue and the
template used to render its public invitation page at /w/<unique_url>.
"""
