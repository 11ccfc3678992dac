# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

from cargo_apply.cli.main import main

main()
