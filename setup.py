"""
Setup file.
"""

import os

from setuptools import setup

URL = "https://github.com/turnipkit/turnipkit"
KEYWORDS = "android mesa turnip freedreno vulkan ndk meson magisk driver packaging"
HERE = os.path.dirname(os.path.abspath(__file__))



if __name__ == "__main__":
    setup(
        keywords=KEYWORDS,
        url=URL,
        include_package_data=True)
