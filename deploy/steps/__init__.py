# deploy/steps/__init__.py
# -*- coding: utf-8 -*-
"""
Provisioning steps of the host bootstrap, one module per step.

Every step function has the signature ``(app_settings, current_logger=None)``
and either returns normally, returns False, or raises.
"""
