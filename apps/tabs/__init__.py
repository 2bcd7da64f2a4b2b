"""
Tabs App - Bar tab accounts, catalog and ledger

Accounts mirror Slack workspace members. Every purchase and payment is a
Transaction row; the running totals on Account are maintained only by
``apps.tabs.services.ledger``.
"""
