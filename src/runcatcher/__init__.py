"""
RunCatcher - Webcam Runner Capture

This package provides:
- Face detection on a webcam feed (OpenCV Haar cascade or YOLO)
- A frame-to-frame motion heuristic that flags "running" faces
- Cropped JPEG snapshots of running faces, uploaded over HTTP
- A small Flask capture service that stores snapshots on disk

Run the service with ``runcatcher serve`` and the watcher with
``runcatcher watch``.
"""

__version__ = "1.0.0"
__author__ = "RunCatcher Team"
