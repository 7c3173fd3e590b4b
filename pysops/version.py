"""PySOPS Meta information.
   PySOPS keeps structured secrets (YAML/JSON) encrypted on disk
   under a single symmetric key file.
"""
__title__ = 'pysops'
__description__ = (
   'Simple file-based secrets management: encrypt YAML/JSON '
   'configuration into authenticated envelopes.'
)
__version__ = '0.2.0'
__license__ = 'MIT'
