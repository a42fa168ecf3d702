# SPDX-License-Identifier: AGPL-3.0-or-later
# pylint: disable=missing-module-docstring

VERSION_STRING = "1.0.0"
VERSION_TAG = VERSION_STRING
GIT_URL = "https://github.com/favget/favget"
DOCS_URL = GIT_URL + "#readme"
ISSUE_URL = GIT_URL + "/issues"
