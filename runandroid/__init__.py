"""run-android: build a React Native Android app and start it on attached devices."""

__version__ = '0.1.0'
