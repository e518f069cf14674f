LIBRARY_NAME = 'ctp-client'
VERSION = '1.0.0'
