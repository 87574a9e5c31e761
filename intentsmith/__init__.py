"""
intentsmith: exported Android component discovery and adb command synthesis.

Scans a project or decompiled-APK tree for AndroidManifest.xml files, finds
the components other apps can reach, and proposes an adb invocation for each
one, optionally asking a language model which intent extras the component's
source code reads.
"""

__version__ = "0.3.0"
__author__ = "intentsmith contributors"
