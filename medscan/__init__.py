"""Medical document ingestion and adaptive OCR preprocessing.

Turns uploaded raster images and PDFs into normalized text plus
classified metadata (document type, dates, keywords, confidence),
using OpenCV/numpy enhancement, Tesseract OCR, and pdfplumber.
"""
