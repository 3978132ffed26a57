"""Photo OCR Keeper.

Batch OCR of small photographed documents into a persistent grid of
pages and slots, one confirmed line of text per slot.
"""
