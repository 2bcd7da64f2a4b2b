"""
Payments App - SumUp checkouts for settling tabs

Creates hosted checkouts for members who owe money, sends payment links over
Slack, and records completed checkouts through the ledger when SumUp calls
the webhook.
"""
