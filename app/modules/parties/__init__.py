"""
Módulo de Clientes y Proveedores (parties)

Cada party pertenece a una organización y se clasifica como
``customer`` (facturas, cotizaciones) o ``vendor`` (compras, órdenes de compra).
"""
