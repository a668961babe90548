"""Errand Fulfillment Engine: intent rules, stage sequencing and stage-escrow settlement."""
