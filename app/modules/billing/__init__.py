"""
Documentos de facturación: facturas, compras, órdenes de compra y cotizaciones.

Los cuatro tipos comparten una sola tabla (``billing_documents``) con un
discriminador ``kind``; el cálculo de impuestos y la numeración por año
fiscal son comunes a todos.
"""
