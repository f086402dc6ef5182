"""MyKeys Meta information.
   MyKeys is a personal secret vault operated through a WeCom chat bot.
"""
__title__ = 'mykeys'
__description__ = (
   'Personal secret vault operated through a WeCom chat bot, '
   'with AES-GCM encryption at rest.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 MyKeys Authors'
__author__ = 'MyKeys Authors'
__license__ = 'Apache-2.0'
