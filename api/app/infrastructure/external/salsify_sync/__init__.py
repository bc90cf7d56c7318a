"""
Integracion one-way: Salsify (PIM) -> almacen de contenido.

Este paquete agrupa las piezas de I/O y normalizacion:
- cliente del canal de exportacion (requests)
- construccion del catalogo de campos remotos
- almacenes clave-valor en Postgres (mapeos, opciones, estado)
- cola de importacion diferida
- registro de hooks de extension

La logica de reconciliacion e importacion vive en app/application/services.
"""
